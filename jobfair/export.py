"""
CSV export of recorded applications, guarded by a shared secret.
"""

from __future__ import annotations

import csv
import hmac
import io
from typing import Iterable, Sequence

from jobfair.errors import ConfigError, UnauthorizedError
from jobfair.types import EXPORT_COLUMNS

EXPORT_FILENAME = "applications-export.csv"


def check_export_key(provided: str | None, expected: str | None) -> None:
    """Raise UnauthorizedError unless ``provided`` matches the secret."""
    if not expected:
        raise ConfigError("Missing EXPORT_KEY")
    if not hmac.compare_digest((provided or "").encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedError()


def render_csv(rows: Iterable[Sequence[object]]) -> str:
    """
    Serialize rows under the fixed EXPORT_COLUMNS header.

    Fields containing a comma, double quote or newline are quoted with inner
    quotes doubled. A leading row equal to the header (a sheet with a header
    row) is not repeated.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for index, row in enumerate(rows):
        values = ["" if v is None else str(v) for v in row]
        if index == 0 and tuple(values) == EXPORT_COLUMNS:
            continue
        writer.writerow(values)
    return buffer.getvalue()
