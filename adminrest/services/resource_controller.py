"""Generic admin operations over any registered resource."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from adminrest.config.settings import Settings
from adminrest.core.concurrency import gather_settled
from adminrest.core.exceptions import NotFoundError, ValidationError
from adminrest.core.logging import get_logger
from adminrest.core.response import clean_request, expand_dotted_keys, strip_response
from adminrest.repositories.base import SortKey
from adminrest.resources.registry import Resource
from adminrest.schemas.base import ListEnvelope
from adminrest.schemas.filtering import FilterDescriptor
from adminrest.services.csv_codec import decode_csv, encode_csv
from adminrest.services.filter_compiler import compile_filters
from adminrest.services.import_reconciler import ImportReconciler
from adminrest.storage.object_storage import ObjectStorage

logger = get_logger(__name__)


@dataclass
class CsvExport:
    filename: str
    content: str


def export_filename(model_name: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{model_name}-export-{now:%Y-%m}-{now.day}-.csv"


def parse_sort(resource: Resource, sort: str | None, default: str) -> list[SortKey]:
    """Turn ``"-created_at,name"`` into sort keys; ``-`` marks descending."""
    if not sort:
        default_key = default.lstrip("-")
        if default_key in resource.fields:
            sort = default
        else:
            return [(resource.identity_key, True)]

    keys: list[SortKey] = []
    for part in sort.replace(" ", ",").split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        key = part.lstrip("-+")
        if key not in resource.fields:
            raise ValidationError("sort", f"{resource.name} has no field {key}")
        keys.append((key, descending))
    return keys


class ResourceController:
    """Runs list/get/create/update/delete/import for whichever resource it is handed."""

    def __init__(self, settings: Settings, object_storage: ObjectStorage):
        self.settings = settings
        self.object_storage = object_storage
        self.reconciler = ImportReconciler(
            forbidden_fields=settings.admin_request_blacklist,
            error_display_limit=settings.admin_import_error_display_limit,
        )

    def _strip(self, resource: Resource, entity: Any) -> Any:
        return strip_response(entity, self.settings.admin_response_blacklist, resource.identity_key)

    def _clean(self, body: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(body, dict):
            raise ValidationError("body", "expected a JSON object")
        return clean_request(expand_dotted_keys(body), self.settings.admin_request_blacklist)

    def _window(self, limit: int | None, skip: int | None) -> tuple[int, int]:
        limit = limit or self.settings.admin_default_limit
        skip = skip or 0
        if limit < 0 or limit > self.settings.admin_max_limit:
            raise ValidationError("limit", f"must be between 1 and {self.settings.admin_max_limit}")
        if skip < 0:
            raise ValidationError("skip", "must not be negative")
        return limit, skip

    async def _enrich(self, resource: Resource, rows: list[dict[str, Any]]) -> None:
        """Run every enrichment over every row concurrently and store the results in place."""
        if not resource.enrichments or not rows:
            return

        targets = [(row, enrichment) for enrichment in resource.enrichments for row in rows]
        results = await gather_settled(
            *(enrichment.transform(row.get(enrichment.field)) for row, enrichment in targets)
        )
        for (row, enrichment), value in zip(targets, results):
            row[enrichment.field] = value

    async def _get_or_404(self, resource: Resource, id: Any, populate: Sequence[str] = ()) -> dict[str, Any]:
        entity = await resource.store.find_by_id(id, populate)
        if entity is None:
            raise NotFoundError(resource.name, details={"id": id})
        return entity

    def describe(self, resource: Resource) -> dict[str, dict[str, Any]]:
        return resource.describe()

    async def list(
        self,
        resource: Resource,
        filters: Sequence[FilterDescriptor] = (),
        *,
        limit: int | None = None,
        skip: int | None = None,
        sort: str | None = None,
        export: bool = False,
    ) -> dict[str, Any] | CsvExport:
        """List matching rows as an envelope, or as a CSV export when ``export`` is set."""
        limit, skip = self._window(limit, skip)
        sort_keys = parse_sort(resource, sort, self.settings.admin_default_sort)
        # related rows are not populated into exports
        populate = () if export else resource.populate

        predicate = await compile_filters(resource, filters)
        count = await resource.store.count(predicate)
        rows = await resource.store.fetch(
            predicate,
            sort=sort_keys,
            limit=limit,
            skip=skip,
            populate=populate,
        )
        await self._enrich(resource, rows)

        logger.info(
            "resources_listed",
            resource=resource.name,
            filters=len(filters),
            count=count,
            returned=len(rows),
            export=export,
        )

        if export:
            hidden = set(self.settings.admin_response_blacklist) - {resource.identity_key}
            headers = [key for key in resource.fields if key not in hidden]
            return CsvExport(
                filename=export_filename(resource.model_name),
                content=encode_csv(rows, headers),
            )

        envelope = ListEnvelope(itemCount=count, items=rows)
        return self._strip(resource, envelope.model_dump())

    async def get(self, resource: Resource, id: Any) -> dict[str, Any]:
        entity = await self._get_or_404(resource, id, resource.populate)
        await self._enrich(resource, [entity])
        return self._strip(resource, entity)

    async def create(self, resource: Resource, body: dict[str, Any]) -> dict[str, Any]:
        entity = await resource.store.create(self._clean(body))
        logger.info("resource_created", resource=resource.name, id=entity.get(resource.identity_key))
        return self._strip(resource, entity)

    async def update(self, resource: Resource, id: Any, body: dict[str, Any]) -> dict[str, Any]:
        await self._get_or_404(resource, id)
        entity = await resource.store.update_by_id(id, self._clean(body))
        if entity is None:
            raise NotFoundError(resource.name, details={"id": id})
        logger.info("resource_updated", resource=resource.name, id=id)
        return self._strip(resource, entity)

    async def delete(self, resource: Resource, id: Any) -> None:
        await self._get_or_404(resource, id)
        await resource.store.remove(id)
        logger.info("resource_deleted", resource=resource.name, id=id)

    async def delete_many(self, resource: Resource, ids: Sequence[Any]) -> None:
        """Remove every row in ``ids``; returns once all removals have settled."""
        removed = await gather_settled(*(resource.store.remove(id) for id in ids))
        logger.info(
            "resources_deleted",
            resource=resource.name,
            requested=len(ids),
            removed=sum(1 for result in removed if result),
        )

    async def import_csv(self, resource: Resource, url: str) -> None:
        """Create or update rows from the CSV file stored at ``url``."""
        payload = await self.object_storage.get_file(url)
        try:
            text = payload.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("url", "the file is not UTF-8 encoded text") from None

        text = text.strip()
        if not text:
            raise ValidationError("url", "the file is empty")

        rows = decode_csv(text)
        logger.info("csv_import_started", resource=resource.name, rows=max(len(rows) - 1, 0))
        await self.reconciler.import_rows(resource, rows)
