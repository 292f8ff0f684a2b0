"""
Value types passed between the ingestion, storage and recording layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence, Union

# Column order of the applications sheet and of the CSV export.
EXPORT_COLUMNS = (
    "timestamp",
    "jobId",
    "jobTitle",
    "company",
    "location",
    "type",
    "tags",
    "name",
    "email",
    "phone",
    "cvUrl",
    "cvFileId",
)


@dataclass
class UploadedFile:
    """A file attachment buffered fully in memory."""

    buffer: bytes
    filename: str = "cv"
    mime_type: str = "application/octet-stream"


@dataclass
class IngestedForm:
    fields: dict[str, str] = field(default_factory=dict)
    file: Optional[UploadedFile] = None


@dataclass(frozen=True)
class StoredFileRef:
    url: str
    id: str


def join_tags(tags: Union[str, Sequence[str], None]) -> str:
    if tags is None:
        return ""
    if isinstance(tags, str):
        return tags
    return ",".join(str(t) for t in tags)


@dataclass(frozen=True)
class ApplicationRecord:
    """A single job application. Never updated once written."""

    job_id: str = ""
    job_title: str = ""
    company: str = ""
    location: str = ""
    type: str = ""
    tags: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    cv_url: str = ""
    cv_file_id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Raw submitted names/values, stored verbatim by the document store.
    submitted_fields: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_fields(
        cls,
        fields: Mapping[str, object],
        *,
        cv_url: str | None = None,
        cv_file_id: str | None = None,
    ) -> "ApplicationRecord":
        """Build a record from camelCase form/JSON fields."""

        def text(key: str) -> str:
            value = fields.get(key)
            return "" if value is None else str(value)

        submitted = {
            key: join_tags(value) if key == "tags" else ("" if value is None else str(value))
            for key, value in fields.items()
        }
        return cls(
            job_id=text("jobId"),
            job_title=text("jobTitle"),
            company=text("company"),
            location=text("location"),
            type=text("type"),
            tags=join_tags(fields.get("tags")),
            name=text("name"),
            email=text("email"),
            phone=text("phone"),
            cv_url=cv_url if cv_url is not None else text("cvUrl"),
            cv_file_id=cv_file_id if cv_file_id is not None else text("cvFileId"),
            submitted_fields=submitted,
        )

    def as_row(self) -> list[str]:
        """Values in EXPORT_COLUMNS order."""
        return [
            self.timestamp.astimezone(timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            self.job_id,
            self.job_title,
            self.company,
            self.location,
            self.type,
            self.tags,
            self.name,
            self.email,
            self.phone,
            self.cv_url,
            self.cv_file_id,
        ]
