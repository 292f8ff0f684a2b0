"""
Streaming multipart/form-data ingestion.

The request body is fed chunk by chunk into python-multipart's callback parser.
Text parts become form fields; the file part is buffered fully in memory.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, Mapping, Optional

import python_multipart
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from jobfair.errors import IngestError
from jobfair.types import IngestedForm, UploadedFile

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "cv"
DEFAULT_MIME_TYPE = "application/octet-stream"


class _Part:
    def __init__(self):
        self.headers: dict[bytes, bytes] = {}
        self.name = ""
        self.filename: Optional[str] = None
        self.content_type = ""
        self.chunks: list[bytes] = []

    @property
    def is_file(self) -> bool:
        return self.filename is not None


class MultipartIngester:
    """
    Splits a multipart body into named fields and a single file attachment.

    Field values are last-write-wins per name. If more than one file part is
    present the last one is kept. No size limit is applied.
    """

    def __init__(self, charset: str = "utf-8"):
        self.charset = charset

    async def ingest(
        self, headers: Mapping[str, str], stream: AsyncIterable[bytes]
    ) -> IngestedForm:
        content_type = headers.get("content-type") or headers.get("Content-Type")
        if not content_type:
            raise IngestError("Expected multipart/form-data body")
        media_type, params = parse_options_header(content_type)
        if media_type.lower() != b"multipart/form-data":
            raise IngestError("Expected multipart/form-data body")
        boundary = params.get(b"boundary")
        if not boundary:
            raise IngestError("Missing multipart boundary")

        state = _ParseState(self.charset)
        parser = python_multipart.MultipartParser(boundary, state.callbacks())
        try:
            async for chunk in stream:
                if chunk:
                    parser.write(chunk)
            parser.finalize()
        except MultipartParseError as e:
            logger.warning("Rejected multipart body: %s", e)
            raise IngestError(f"Malformed multipart body: {e}") from e

        if not state.ended:
            raise IngestError("Incomplete multipart body")
        return IngestedForm(fields=state.fields, file=state.file)


class _ParseState:
    """Collects parser callbacks into fields and a file."""

    def __init__(self, charset: str):
        self.charset = charset
        self.fields: dict[str, str] = {}
        self.file: Optional[UploadedFile] = None
        self.ended = False
        self._part: Optional[_Part] = None
        self._header_field = b""
        self._header_value = b""

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_end": self.on_end,
        }

    def on_part_begin(self) -> None:
        self._part = _Part()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._part.headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        part = self._part
        _, options = parse_options_header(
            part.headers.get(b"content-disposition", b"")
        )
        part.name = self._decode(options.get(b"name", b""))
        if b"filename" in options:
            part.filename = self._decode(options[b"filename"])
        part.content_type = part.headers.get(b"content-type", b"").decode("latin-1")

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._part.chunks.append(data[start:end])

    def on_part_end(self) -> None:
        part = self._part
        self._part = None
        if not part.is_file:
            self.fields[part.name] = self._decode(b"".join(part.chunks))
            return
        buffer = b"".join(part.chunks)
        if not part.filename and not buffer:
            # Browser form submitted without choosing a file.
            return
        self.file = UploadedFile(
            buffer=buffer,
            filename=part.filename or DEFAULT_FILENAME,
            mime_type=part.content_type or DEFAULT_MIME_TYPE,
        )

    def on_end(self) -> None:
        self.ended = True

    def _decode(self, value: bytes) -> str:
        return value.decode(self.charset, errors="replace")
