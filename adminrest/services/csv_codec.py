"""CSV conversion for admin export and import.

Export quotes every value individually. Structured values are written as
JSON, dates as ``YYYY-MM-DD HH:MM:SS`` in UTC. Import splits text with a
single tokenizer pattern that understands quoted fields with doubled quotes
and line breaks inside quotes.
"""
from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any

COLUMN_DELIMITER = ","
LINE_DELIMITER = "\n"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def format_cell(value: Any) -> str:
    """Render one value as a CSV cell."""
    if value is None:
        return '""'
    if isinstance(value, (dict, list, tuple)):
        return _quote(json.dumps(value, default=str))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return _quote("true" if value else "false")
    return _quote(str(value))


def encode_csv(rows: Sequence[Mapping[str, Any]], headers: Sequence[str]) -> str:
    """Convert rows to CSV text with ``headers`` as the first line."""
    lines = [COLUMN_DELIMITER.join(headers)]
    for row in rows:
        lines.append(COLUMN_DELIMITER.join(format_cell(row.get(header)) for header in headers))
    return LINE_DELIMITER.join(lines)


@lru_cache(maxsize=8)
def _tokenizer(delimiter: str) -> re.Pattern:
    d = re.escape(delimiter)
    return re.compile(
        # separator: delimiter, line break or start of input
        rf"({d}|\r?\n|\r|^)"
        # quoted field, "" escapes a quote
        rf'(?:"([^"]*(?:""[^"]*)*)"|'
        # unquoted field
        rf'([^"{d}\r\n]*))'
    )


def decode_csv(text: str, delimiter: str = COLUMN_DELIMITER) -> list[list[str]]:
    """Split CSV text into rows of string cells. The header row is not special."""
    rows: list[list[str]] = [[]]

    for match in _tokenizer(delimiter).finditer(text):
        separator, quoted, unquoted = match.groups()
        if separator and separator != delimiter:
            rows.append([])

        if quoted is not None:
            rows[-1].append(quoted.replace('""', '"'))
        else:
            rows[-1].append(unquoted or "")

    return rows
