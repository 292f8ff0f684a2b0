"""
HTTP routes for the applications API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from jobfair.config import Settings, get_settings
from jobfair.dependencies import (
    get_record_handler,
    get_recorder,
    get_submission_handler,
    get_upload_handler,
    require_export_key,
)
from jobfair.errors import ExportError
from jobfair.export import EXPORT_FILENAME, render_csv
from jobfair.recorders import ApplicationRecorder
from jobfair.schemas import (
    ApplyJobResponse,
    ApplyRequest,
    HealthResponse,
    OkResponse,
    UploadResponse,
)
from jobfair.submission import SubmissionHandler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/apply-job", response_model=ApplyJobResponse)
async def apply_job(
    request: Request,
    handler: SubmissionHandler = Depends(get_submission_handler),
):
    """
    Multipart application with the CV in the ``file`` field: upload, then
    record in one request.
    """
    result = await handler.submit(request.headers, request.stream())
    return ApplyJobResponse(cvUrl=result.cv_url, cvFileId=result.cv_file_id)


@router.post("/upload", response_model=UploadResponse)
async def upload_cv(
    request: Request,
    handler: SubmissionHandler = Depends(get_upload_handler),
):
    result = await handler.upload_only(request.headers, request.stream())
    return UploadResponse(cvUrl=result.cv_url, cvFileId=result.cv_file_id)


@router.post("/apply", response_model=OkResponse)
async def apply(
    payload: ApplyRequest,
    handler: SubmissionHandler = Depends(get_record_handler),
):
    await handler.record_only(payload.model_dump(exclude_none=True))
    return OkResponse()


@router.get("/export", dependencies=[Depends(require_export_key)])
async def export_applications(
    recorder: ApplicationRecorder = Depends(get_recorder),
):
    try:
        rows = await run_in_threadpool(recorder.list_rows)
    except ExportError:
        logger.exception("Stage EXPORT failed")
        raise
    logger.info("Exporting %d application rows", len(rows))
    return Response(
        content=render_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(backend=settings.backend)
