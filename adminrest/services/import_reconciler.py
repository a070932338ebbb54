"""Create-or-update rows of a decoded CSV document."""
from __future__ import annotations

import asyncio
import json
from collections.abc import Collection, Sequence
from typing import Any, NamedTuple

from sqlalchemy.exc import StatementError

from adminrest.core.exceptions import (
    CsvHeaderError,
    ImportFailedError,
    RowRejectedError,
    StructuredCellError,
)
from adminrest.core.logging import get_logger
from adminrest.resources.registry import Resource

logger = get_logger(__name__)


class RowOutcome(NamedTuple):
    row: int
    entity: dict[str, Any] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_headers(headers: Sequence[str], fields: Collection[str]) -> None:
    for header in headers:
        if header not in fields:
            raise CsvHeaderError(header)


def parse_cell(cell: str | None) -> Any:
    """Cell value as stored: JSON arrays and objects are parsed, anything else stays text."""
    if not cell:
        return ""
    if (cell[0] == "[" and cell[-1] == "]") or (cell[0] == "{" and cell[-1] == "}"):
        return json.loads(cell)
    return cell


def build_row(
    headers: Sequence[str],
    cells: Sequence[str],
    row: int,
    forbidden_fields: Collection[str],
    identity_key: str,
) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for position, header in enumerate(headers):
        if header != identity_key and header in forbidden_fields:
            continue
        cell = cells[position] if position < len(cells) else ""
        try:
            values[header] = parse_cell(cell)
        except json.JSONDecodeError:
            raise StructuredCellError(header, row) from None
    return values


def public_error(exc: Exception) -> Exception:
    """Row failure as reported to the client.

    Database errors carry the SQL statement and every bound parameter, so
    only the first line of the driver message is kept.
    """
    if not isinstance(exc, StatementError):
        return exc
    cause = exc.orig if exc.orig is not None else exc
    lines = str(cause).strip().splitlines()
    return RowRejectedError(lines[0] if lines else type(cause).__name__)


class ImportReconciler:
    """Imports CSV rows concurrently, each row settling on its own."""

    def __init__(self, forbidden_fields: Collection[str], error_display_limit: int = 5):
        self.forbidden_fields = frozenset(forbidden_fields)
        self.error_display_limit = error_display_limit

    async def _upsert(self, resource: Resource, values: dict[str, Any]) -> dict[str, Any]:
        store = resource.store
        identity = values.pop(resource.identity_key, None)
        if identity not in (None, "") and await store.find_by_id(identity) is not None:
            updated = await store.update_by_id(identity, values)
            if updated is not None:
                return updated
        return await store.create(values)

    async def _import_row(
        self,
        resource: Resource,
        headers: Sequence[str],
        cells: Sequence[str],
        row: int,
    ) -> RowOutcome:
        try:
            values = build_row(headers, cells, row, self.forbidden_fields, resource.identity_key)
            entity = await self._upsert(resource, values)
        except Exception as exc:
            logger.info("import_row_failed", resource=resource.name, row=row, error=str(exc))
            return RowOutcome(row, error=public_error(exc))
        return RowOutcome(row, entity=entity)

    async def import_rows(self, resource: Resource, rows: Sequence[Sequence[str]]) -> list[RowOutcome]:
        """Import every data row of ``rows`` (row 0 holds the headers).

        Raises ``CsvHeaderError`` before anything is written when a header is
        not a field of the resource, and ``ImportFailedError`` once every row
        has settled if any of them failed.
        """
        if not rows:
            return []
        headers = list(rows[0])
        validate_headers(headers, resource.fields)

        outcomes = await asyncio.gather(
            *(
                self._import_row(resource, headers, cells, row)
                for row, cells in enumerate(rows[1:], start=1)
            )
        )

        failures = {outcome.row: outcome.error for outcome in outcomes if not outcome.ok}
        logger.info(
            "csv_import_finished",
            resource=resource.name,
            rows=len(outcomes),
            failed=len(failures),
        )
        if failures:
            raise ImportFailedError(failures, self.error_display_limit)
        return list(outcomes)
