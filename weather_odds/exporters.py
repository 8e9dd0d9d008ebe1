"""
Export helpers.

CSV only: 1 row per (variable, sample), fixed column order. A row that
can't be written raises SerializationError; rows are never dropped.
"""

from __future__ import annotations

import csv
import io
import json
import math
from typing import Any, Dict, Iterable

from .errors import SerializationError
from .models import ExportRow


EXPORT_FIELDS = ["location", "day_of_year", "year_offset", "variable", "value", "unit", "source"]


def row_to_record(row: ExportRow) -> Dict[str, Any]:
    """Validate one row and flatten it to CSV cell values."""
    if not isinstance(row, ExportRow):
        raise SerializationError(f"Not an export row: {row!r}")

    value = row.value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise SerializationError(f"Non-finite value in row for {row.variable!r}: {value!r}")
    if not row.variable or not row.unit:
        raise SerializationError(f"Row is missing its variable or unit: {row!r}")
    if row.year_offset >= 0:
        raise SerializationError(f"year_offset must be negative, got {row.year_offset}")

    return {
        # location dict becomes a JSON string in a cell
        "location": json.dumps(row.location, separators=(",", ":")),
        "day_of_year": row.day_of_year,
        "year_offset": row.year_offset,
        "variable": row.variable,
        "value": f"{value:.4f}",
        "unit": row.unit,
        "source": row.source,
    }


def export_csv(rows: Iterable[ExportRow]) -> str:
    """Export rows as CSV text with a header line, even when there are no rows."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS, extrasaction="raise")
    writer.writeheader()

    for row in rows:
        writer.writerow(row_to_record(row))

    return output.getvalue()
