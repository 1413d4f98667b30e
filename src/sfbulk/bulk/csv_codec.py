"""CSV wire format for Bulk API v2 ingest uploads and result sets.

Uploads use an unquoted header line followed by quote-all data lines,
CRLF-joined with no trailing terminator (the job is created with
``lineEnding=CRLF``). Result sets come back from Salesforce in ordinary
RFC 4180 CSV and are read with a quote-aware parser.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from typing import Any

from sfbulk.core.types import Record

CRLF = "\r\n"

# Long text areas echoed back in result sets exceed the 128 KB default.
csv.field_size_limit(2**27)  # 128 MB


def header_for(records: Iterable[Record]) -> list[str]:
    """Union of field names across *records*, in first-appearance order."""
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def _render(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: Any) -> str:
    return '"' + _render(value).replace('"', '""') + '"'


def encode(records: Sequence[Record]) -> str:
    """Serialise *records* to the CSV body of a batch upload.

    Records lacking one of the header fields get an empty value for it.
    Returns ``""`` for an empty batch.
    """
    if not records:
        return ""
    header = header_for(records)
    lines = [",".join(header)]
    for record in records:
        lines.append(",".join(_quote(record.get(field)) for field in header))
    return CRLF.join(lines)


def _zip_row(header: Sequence[str], values: Sequence[str]) -> dict[str, str | None]:
    # Short rows leave trailing fields as None; surplus values are dropped.
    return {
        name: values[index] if index < len(values) else None
        for index, name in enumerate(header)
    }


def _is_blank(row: Sequence[str]) -> bool:
    return not row or (len(row) == 1 and not row[0].strip())


def decode(text: str | None, *, quote_aware: bool = True) -> list[dict[str, str | None]]:
    """Parse a result-set CSV into one mapping per data row.

    Args:
        text: CSV text; ``None`` and ``""`` both decode to ``[]``.
        quote_aware: Parse quoted fields properly, so commas, doubled
            quotes and line breaks inside a value survive. With ``False``
            the legacy line/comma split is used: every ``"`` is stripped
            from values and header names are taken verbatim.
    """
    if not text:
        return []
    if not quote_aware:
        return _decode_naive(text)

    rows = [row for row in csv.reader(io.StringIO(text, newline="")) if not _is_blank(row)]
    if not rows:
        return []
    header, *data = rows
    return [_zip_row(header, row) for row in data]


def _decode_naive(text: str) -> list[dict[str, str | None]]:
    lines = [line for line in text.split(CRLF) if line.strip()]
    if not lines:
        return []
    header = lines[0].split(",")
    return [
        _zip_row(header, [value.replace('"', "") for value in line.split(",")])
        for line in lines[1:]
    ]
