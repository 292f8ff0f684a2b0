"""
Error taxonomy shared by the ingestion, storage and recording layers.

Every error carries the HTTP status it maps to and a message that is safe to
return to the caller.
"""

from __future__ import annotations


class JobfairError(Exception):
    """Base class for errors rendered as ``{"ok": false, "error": ...}``."""

    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ClientError(JobfairError):
    status_code = 400
    default_message = "Bad request"


class IngestError(ClientError):
    default_message = "Malformed multipart body"


class MissingFileError(ClientError):
    default_message = "No CV file uploaded"


class ValidationFailed(ClientError):
    default_message = "Missing required field"


class UnauthorizedError(JobfairError):
    status_code = 401
    default_message = "Unauthorized"


class ConfigError(JobfairError):
    """A required setting is missing or unusable."""

    default_message = "Server is not configured"


class UpstreamError(JobfairError):
    """A Google / Firebase call failed."""

    default_message = "Backend request failed"


class UploadError(UpstreamError):
    default_message = "Upload failed"


class RecordError(UpstreamError):
    default_message = "Application submission failed"


class ExportError(UpstreamError):
    default_message = "Export failed"


def upstream_message(exc: BaseException, fallback: str) -> str:
    """Best-effort human readable message for an SDK exception."""
    # googleapiclient.errors.HttpError
    reason = getattr(exc, "reason", None)
    if isinstance(reason, str) and reason:
        return reason
    # google.api_core.exceptions.GoogleAPICallError
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or fallback
