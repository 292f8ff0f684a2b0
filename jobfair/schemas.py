"""
Pydantic schemas for the applications API.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class ApplyRequest(BaseModel):
    """Application fields posted as JSON after a separate CV upload."""

    model_config = ConfigDict(extra="allow")

    jobId: Optional[str] = None
    jobTitle: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    type: Optional[str] = None
    tags: Optional[Union[str, list[str]]] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    cvUrl: Optional[str] = None
    cvFileId: Optional[str] = None


class OkResponse(BaseModel):
    ok: Literal[True] = True


class UploadResponse(OkResponse):
    cvUrl: str
    cvFileId: str


class ApplyJobResponse(OkResponse):
    cvUrl: str
    cvFileId: Optional[str] = None
    message: str = "Application submitted successfully."


class HealthResponse(OkResponse):
    backend: str

