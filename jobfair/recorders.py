"""
Recorder abstraction for application records: Google Sheets, Firestore and
an in-memory test implementation.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from jobfair.errors import ConfigError, ExportError, RecordError, upstream_message
from jobfair.types import EXPORT_COLUMNS, ApplicationRecord

logger = logging.getLogger(__name__)


class ApplicationRecorder(Protocol):
    """Interface for persisting and reading back applications."""

    def append(self, record: ApplicationRecord) -> None:
        ...

    def list_rows(self) -> list[list[str]]:
        ...


class InMemoryApplicationRecorder:
    """Simple in-memory recorder for development and tests."""

    def __init__(self):
        self.records: list[ApplicationRecord] = []
        self.fail_with: str | None = None

    def append(self, record: ApplicationRecord) -> None:
        if self.fail_with is not None:
            raise RecordError(self.fail_with)
        self.records.append(record)

    def list_rows(self) -> list[list[str]]:
        return [record.as_row() for record in self.records]


class SheetsApplicationRecorder:
    """Appends one row per application to a spreadsheet."""

    def __init__(self, sheets_service: Any, spreadsheet_id: str | None, range_: str = "A:Z"):
        if not spreadsheet_id:
            raise ConfigError("Missing GOOGLE_SHEETS_ID")
        if sheets_service is None:
            raise ConfigError("Missing Google Sheets credentials")
        self.values = sheets_service.spreadsheets().values()
        self.spreadsheet_id = spreadsheet_id
        self.range = range_

    def append(self, record: ApplicationRecord) -> None:
        try:
            self.values.append(
                spreadsheetId=self.spreadsheet_id,
                range=self.range,
                valueInputOption="RAW",
                body={"values": [record.as_row()]},
            ).execute()
        except Exception as e:
            raise RecordError(upstream_message(e, "Append failed")) from e

    def list_rows(self) -> list[list[str]]:
        try:
            response = self.values.get(
                spreadsheetId=self.spreadsheet_id, range=self.range
            ).execute()
        except Exception as e:
            raise ExportError(upstream_message(e, ExportError.default_message)) from e
        return [[str(v) for v in row] for row in response.get("values", [])]


def _decode_value(value: dict) -> str:
    """Flatten a Firestore REST Value into the string the export needs."""
    for kind in (
        "stringValue",
        "timestampValue",
        "integerValue",
        "doubleValue",
        "booleanValue",
        "referenceValue",
    ):
        if kind in value:
            return str(value[kind])
    return ""


class FirestoreApplicationRecorder:
    """
    Stores each application as a document in a Firestore collection, through
    the Firestore v1 REST API.

    The document holds every submitted field verbatim plus ``cvUrl`` and a
    server-set ``timestamp``. Document ids are random, like the client SDKs'
    ``add()``.
    """

    def __init__(self, firestore_service: Any, project_id: str | None, collection: str = "applications"):
        if not project_id:
            raise ConfigError("Missing FIREBASE_PROJECT_ID")
        if firestore_service is None:
            raise ConfigError("Missing Firestore credentials")
        self.documents = firestore_service.projects().databases().documents()
        self.database = f"projects/{project_id}/databases/(default)"
        self.parent = f"{self.database}/documents"
        self.collection = collection

    def append(self, record: ApplicationRecord) -> None:
        fields = dict(record.submitted_fields)
        fields["cvUrl"] = record.cv_url
        if record.cv_file_id and "cvFileId" not in fields:
            fields["cvFileId"] = record.cv_file_id
        fields.pop("timestamp", None)

        doc_name = f"{self.parent}/{self.collection}/{uuid.uuid4().hex[:20]}"
        write = {
            "update": {
                "name": doc_name,
                "fields": {k: {"stringValue": v} for k, v in fields.items()},
            },
            "updateTransforms": [
                {"fieldPath": "timestamp", "setToServerValue": "REQUEST_TIME"}
            ],
            "currentDocument": {"exists": False},
        }
        try:
            self.documents.commit(
                database=self.database, body={"writes": [write]}
            ).execute()
        except Exception as e:
            raise RecordError(
                upstream_message(
                    e, "Application submission failed (Firebase backend error)."
                )
            ) from e
        logger.info("Recorded application %s", doc_name)

    def list_rows(self) -> list[list[str]]:
        rows = []
        try:
            request = self.documents.list(
                parent=self.parent,
                collectionId=self.collection,
                orderBy="timestamp",
                pageSize=300,
            )
            while request is not None:
                response = request.execute()
                for doc in response.get("documents", []):
                    data = doc.get("fields", {})
                    rows.append(
                        [_decode_value(data.get(column, {})) for column in EXPORT_COLUMNS]
                    )
                request = self.documents.list_next(request, response)
        except Exception as e:
            raise ExportError(upstream_message(e, ExportError.default_message)) from e
        return rows
