"""
FastAPI application entry point for the applications backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobfair.config import Settings, get_settings
from jobfair.errors import JobfairError
from jobfair.routes import router

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": message},
        headers=headers,
    )


async def handle_jobfair_error(request: Request, exc: JobfairError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error_response(
        exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Malformed request body") if errors else "Malformed request body"
    return _error_response(400, message)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Jobfair Applications Backend", version="0.1.0")
    app.add_exception_handler(JobfairError, handle_jobfair_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.include_router(router, prefix=settings.api_prefix)
    logger.info("Serving applications API with %s backend", settings.backend)
    return app


app = create_app()
