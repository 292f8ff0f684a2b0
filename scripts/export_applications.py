"""
CLI helper to dump recorded applications as CSV without going through HTTP.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jobfair.config import get_settings
from jobfair.dependencies import build_recorder
from jobfair.errors import JobfairError
from jobfair.export import render_csv

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Export job applications as CSV")
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default="-",
        help="Output file path ('-' for stdout)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    try:
        rows = build_recorder(settings).list_rows()
    except JobfairError as e:
        logger.error("Export failed: %s", e.message)
        return 1

    csv_text = render_csv(rows)
    if args.output == "-":
        sys.stdout.write(csv_text)
    else:
        Path(args.output).write_text(csv_text, encoding="utf-8")
        logger.info("Wrote %d rows to %s", len(rows), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
