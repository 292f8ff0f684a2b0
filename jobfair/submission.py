"""
Submission pipeline: parse the multipart body, upload the CV, record the
application.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import AsyncIterable, Mapping, Optional

from starlette.concurrency import run_in_threadpool

from jobfair.errors import (
    JobfairError,
    MissingFileError,
    RecordError,
    UploadError,
    ValidationFailed,
)
from jobfair.multipart import MultipartIngester
from jobfair.recorders import ApplicationRecorder
from jobfair.storage import FileStore
from jobfair.types import ApplicationRecord, IngestedForm, StoredFileRef

logger = logging.getLogger(__name__)

REQUIRED_APPLICATION_FIELDS = ("name", "email")


class SubmissionStage(enum.Enum):
    PARSE_REQUEST = "PARSE_REQUEST"
    UPLOAD_FILE = "UPLOAD_FILE"
    RECORD_APPLICATION = "RECORD_APPLICATION"


@dataclass
class SubmissionResult:
    cv_url: str
    cv_file_id: Optional[str] = None
    record: Optional[ApplicationRecord] = None


def require_fields(fields: Mapping[str, object], names=REQUIRED_APPLICATION_FIELDS) -> None:
    for name in names:
        value = fields.get(name)
        if value is None or not str(value).strip():
            raise ValidationFailed(f"Missing required field: {name}")


class SubmissionHandler:
    """
    Runs the stages strictly in order. A failure at any stage is terminal and
    nothing is retried. If recording fails after a successful upload the file
    stays in storage unreferenced.
    """

    def __init__(
        self,
        file_store: Optional[FileStore],
        recorder: Optional[ApplicationRecorder],
        ingester: MultipartIngester | None = None,
    ):
        self.file_store = file_store
        self.recorder = recorder
        self.ingester = ingester or MultipartIngester()

    async def parse(
        self, headers: Mapping[str, str], stream: AsyncIterable[bytes]
    ) -> IngestedForm:
        try:
            form = await self.ingester.ingest(headers, stream)
        except JobfairError:
            logger.warning("Stage %s failed", SubmissionStage.PARSE_REQUEST.value)
            raise
        if form.file is None:
            raise MissingFileError()
        return form

    async def upload(self, form: IngestedForm) -> StoredFileRef:
        file = form.file
        try:
            return await run_in_threadpool(
                self.file_store.upload,
                file.buffer,
                file.filename,
                file.mime_type,
                form.fields.get("jobId"),
            )
        except UploadError:
            logger.exception("Stage %s failed", SubmissionStage.UPLOAD_FILE.value)
            raise

    async def record(self, record: ApplicationRecord) -> None:
        try:
            await run_in_threadpool(self.recorder.append, record)
        except RecordError:
            logger.exception(
                "Stage %s failed for job %s (file %s left in storage)",
                SubmissionStage.RECORD_APPLICATION.value,
                record.job_id or "unknown",
                record.cv_file_id or record.cv_url,
            )
            raise

    async def submit(
        self, headers: Mapping[str, str], stream: AsyncIterable[bytes]
    ) -> SubmissionResult:
        """Full application: parse, upload, then record."""
        form = await self.parse(headers, stream)
        require_fields(form.fields)
        stored = await self.upload(form)
        record = ApplicationRecord.from_fields(
            form.fields, cv_url=stored.url, cv_file_id=stored.id
        )
        await self.record(record)
        logger.info(
            "Application for job %s stored (file %s)", record.job_id or "unknown", stored.id
        )
        return SubmissionResult(cv_url=stored.url, cv_file_id=stored.id, record=record)

    async def upload_only(
        self, headers: Mapping[str, str], stream: AsyncIterable[bytes]
    ) -> SubmissionResult:
        """Upload a CV without recording; the client records it separately."""
        form = await self.parse(headers, stream)
        stored = await self.upload(form)
        return SubmissionResult(cv_url=stored.url, cv_file_id=stored.id)

    async def record_only(self, fields: Mapping[str, object]) -> ApplicationRecord:
        """Record an application whose CV was uploaded beforehand."""
        require_fields(fields)
        record = ApplicationRecord.from_fields(fields)
        await self.record(record)
        return record
