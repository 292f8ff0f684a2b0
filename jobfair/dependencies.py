"""
Dependency wiring for the FastAPI app.

Stores and recorders are built once per process from Settings. Which pair is
built depends on JOBFAIR_BACKEND; the two real pairs are never mixed.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Query

from jobfair import google_clients
from jobfair.config import Settings, get_settings
from jobfair.errors import ConfigError
from jobfair.export import check_export_key
from jobfair.recorders import (
    ApplicationRecorder,
    FirestoreApplicationRecorder,
    InMemoryApplicationRecorder,
    SheetsApplicationRecorder,
)
from jobfair.storage import (
    DriveFileStore,
    FileStore,
    FirebaseStorageFileStore,
    InMemoryFileStore,
)
from jobfair.submission import SubmissionHandler

logger = logging.getLogger(__name__)

_file_store: FileStore | None = None
_recorder: ApplicationRecorder | None = None


def build_file_store(settings: Settings) -> FileStore:
    if settings.backend == "memory":
        return InMemoryFileStore()
    if settings.backend == "firebase":
        settings.require("firebase_storage_bucket")
        return FirebaseStorageFileStore(google_clients.firebase_bucket(settings))
    settings.require("google_drive_folder_id")
    return DriveFileStore(
        google_clients.drive_service(settings), settings.google_drive_folder_id
    )


def build_recorder(settings: Settings) -> ApplicationRecorder:
    if settings.backend == "memory":
        return InMemoryApplicationRecorder()
    if settings.backend == "firebase":
        service, project = google_clients.firestore_service(settings)
        return FirestoreApplicationRecorder(
            service, project, settings.firebase_applications_collection
        )
    settings.require("google_sheets_id")
    return SheetsApplicationRecorder(
        google_clients.sheets_service(settings),
        settings.google_sheets_id,
        settings.google_sheets_range,
    )


def get_file_store() -> FileStore:
    """
    Return a singleton file store. Configuration problems surface here,
    before any request body is read.
    """
    global _file_store
    if _file_store is not None:
        return _file_store
    try:
        _file_store = build_file_store(get_settings())
    except ConfigError as e:
        logger.error("Configuration error (file store): %s", e.message)
        raise
    return _file_store


def get_recorder() -> ApplicationRecorder:
    global _recorder
    if _recorder is not None:
        return _recorder
    try:
        _recorder = build_recorder(get_settings())
    except ConfigError as e:
        logger.error("Configuration error (recorder): %s", e.message)
        raise
    return _recorder


def get_submission_handler(
    file_store: FileStore = Depends(get_file_store),
    recorder: ApplicationRecorder = Depends(get_recorder),
) -> SubmissionHandler:
    return SubmissionHandler(file_store, recorder)


def get_upload_handler(
    file_store: FileStore = Depends(get_file_store),
) -> SubmissionHandler:
    return SubmissionHandler(file_store, None)


def get_record_handler(
    recorder: ApplicationRecorder = Depends(get_recorder),
) -> SubmissionHandler:
    return SubmissionHandler(None, recorder)


def require_export_key(
    key: str = Query(""), settings: Settings = Depends(get_settings)
) -> None:
    try:
        check_export_key(key, settings.export_key)
    except ConfigError as e:
        logger.error("Configuration error (export): %s", e.message)
        raise


def reset_clients() -> None:
    """Drop cached stores (useful in tests)."""
    global _file_store, _recorder
    _file_store = None
    _recorder = None
