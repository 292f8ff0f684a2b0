"""
Storage abstraction for CV uploads: Firebase Storage, Google Drive and
in-memory testing.
"""

from __future__ import annotations

import io
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

from googleapiclient.http import MediaIoBaseUpload

from jobfair.errors import ConfigError, UploadError, upstream_message
from jobfair.types import StoredFileRef

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")
FIREBASE_DOWNLOAD_URL = (
    "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}"
    "?alt=media&token={token}"
)
DRIVE_VIEW_URL = "https://drive.google.com/file/d/{file_id}/view"


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9_.-] with an underscore."""
    return UNSAFE_FILENAME_CHARS.sub("_", filename)


def _now_millis() -> int:
    return int(time.time() * 1000)


def storage_object_key(job_id: str | None, filename: str, millis: int) -> str:
    return f"cvs/{job_id or 'unknown'}/{millis}_{sanitize_filename(filename)}"


def drive_display_name(job_id: str | None, filename: str, millis: int) -> str:
    return f"{job_id or 'unknown'}__{millis}__{sanitize_filename(filename)}"


class FileStore(Protocol):
    """Defines the operations the submission flow needs from file storage."""

    def upload(
        self, data: bytes, filename: str, mime_type: str, job_id: str | None
    ) -> StoredFileRef:
        ...


@dataclass
class InMemoryFileStore:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)
    fail_with: str | None = None

    def upload(
        self, data: bytes, filename: str, mime_type: str, job_id: str | None
    ) -> StoredFileRef:
        if self.fail_with is not None:
            raise UploadError(self.fail_with)
        key = storage_object_key(job_id, filename, _now_millis())
        self.stored_objects[key] = (bytes(data), mime_type)
        return StoredFileRef(url=f"{self.base_url}/{key}", id=key)


class FirebaseStorageFileStore:
    """
    Uploads CVs to a Firebase Storage bucket.

    The object gets a download token in its metadata so the returned URL is
    the same long-lived link the Firebase client SDK's getDownloadURL gives.
    """

    def __init__(self, bucket: Any):
        if bucket is None or not getattr(bucket, "name", None):
            raise ConfigError("Missing FIREBASE_STORAGE_BUCKET")
        self.bucket = bucket

    def upload(
        self, data: bytes, filename: str, mime_type: str, job_id: str | None
    ) -> StoredFileRef:
        key = storage_object_key(job_id, filename, _now_millis())
        token = uuid.uuid4().hex
        try:
            blob = self.bucket.blob(key)
            blob.metadata = {"firebaseStorageDownloadTokens": token}
            blob.upload_from_string(data, content_type=mime_type)
        except Exception as e:
            raise UploadError(upstream_message(e, UploadError.default_message)) from e

        url = FIREBASE_DOWNLOAD_URL.format(
            bucket=self.bucket.name, path=quote(key, safe=""), token=token
        )
        logger.info("Stored %d bytes at gs://%s/%s", len(data), self.bucket.name, key)
        return StoredFileRef(url=url, id=key)


class DriveFileStore:
    """
    Uploads CVs into a (shared) Google Drive folder and shares them by link.
    """

    def __init__(self, drive_service: Any, folder_id: str | None):
        if not folder_id:
            raise ConfigError("Missing GOOGLE_DRIVE_FOLDER_ID")
        if drive_service is None:
            raise ConfigError("Missing Google Drive credentials")
        self.drive = drive_service
        self.folder_id = folder_id

    def upload(
        self, data: bytes, filename: str, mime_type: str, job_id: str | None
    ) -> StoredFileRef:
        name = drive_display_name(job_id, filename, _now_millis())
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)
        try:
            created = (
                self.drive.files()
                .create(
                    body={"name": name, "parents": [self.folder_id]},
                    media_body=media,
                    fields="id, webViewLink",
                    supportsAllDrives=True,
                )
                .execute()
            )
            file_id = created["id"]
            self.drive.permissions().create(
                fileId=file_id,
                body={"role": "reader", "type": "anyone"},
                supportsAllDrives=True,
            ).execute()
        except Exception as e:
            raise UploadError(upstream_message(e, UploadError.default_message)) from e

        url = created.get("webViewLink") or DRIVE_VIEW_URL.format(file_id=file_id)
        logger.info("Uploaded %s to Drive folder %s as %s", name, self.folder_id, file_id)
        return StoredFileRef(url=url, id=file_id)
