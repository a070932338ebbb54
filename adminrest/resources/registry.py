"""Registry of the resource types exposed through the admin routes."""
from __future__ import annotations

import importlib
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from sqlalchemy import Column, inspect as sa_inspect
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import RelationshipDirection

from adminrest.core.logging import get_logger
from adminrest.repositories.base import ResourceStore
from adminrest.repositories.sqlalchemy_store import (
    SQLAlchemyStore,
    coerce_column_value,
    column_python_type,
)

logger = get_logger(__name__)


class Enrichment(NamedTuple):
    """Post-fetch transform applied to one field of every returned row."""

    field: str
    transform: Callable[[Any], Awaitable[Any]]


class RelationshipTarget(NamedTuple):
    resource: "Resource"
    local_key: str


@dataclass
class Resource:
    """One model exposed by the admin layer, with its store and admin options."""

    name: str
    model: type
    store: ResourceStore
    populate: tuple[str, ...] = ()
    enrichments: tuple[Enrichment, ...] = ()
    registry: "ResourceRegistry | None" = field(default=None, repr=False)

    @property
    def mapper(self):
        return sa_inspect(self.model)

    @property
    def model_name(self) -> str:
        return self.model.__name__

    @property
    def identity_key(self) -> str:
        return self.store.identity_key

    @property
    def fields(self) -> list[str]:
        """Column keys in declaration order."""
        return [attr.key for attr in self.mapper.column_attrs]

    def column(self, key: str) -> Column | None:
        attr = self.mapper.column_attrs.get(key)
        return attr.columns[0] if attr is not None else None

    def attribute(self, key: str):
        return getattr(self.model, key)

    def coerce(self, key: str, value: Any) -> Any:
        return coerce_column_value(self.column(key), value)

    def relationship_target(self, owner: str) -> RelationshipTarget | None:
        """Resolve ``owner`` (relationship name or its foreign-key column) to a related resource."""
        for relationship in self.mapper.relationships:
            if relationship.direction is not RelationshipDirection.MANYTOONE:
                continue
            local_columns = list(relationship.local_columns)
            if len(local_columns) != 1:
                continue
            local_key = self.mapper.get_property_by_column(local_columns[0]).key
            if owner in (relationship.key, local_key):
                related = self._resource_for_model(relationship.mapper.class_)
                return RelationshipTarget(related, local_key)

        column = self.column(owner)
        if column is None or not column.foreign_keys:
            return None
        target_table = next(iter(column.foreign_keys)).column.table
        for mapper in self.mapper.registry.mappers:
            if mapper.local_table is target_table:
                return RelationshipTarget(self._resource_for_model(mapper.class_), owner)
        return None

    def _resource_for_model(self, model: type) -> Resource:
        if self.registry is not None:
            return self.registry.resource_for_model(model)
        session_maker = getattr(self.store, "session_maker", None)
        return Resource(model.__name__, model, SQLAlchemyStore(model, session_maker))

    def describe(self) -> dict[str, dict[str, Any]]:
        """Field name to type information, in column order."""
        description = {}
        for key in self.fields:
            column = self.column(key)
            python_type = column_python_type(column)
            info: dict[str, Any] = {
                "type": type(column.type).__name__,
                "python_type": python_type.__name__ if python_type else None,
                "nullable": bool(column.nullable),
                "primary_key": bool(column.primary_key),
            }
            target = self.relationship_target(key) if column.foreign_keys else None
            if target is not None:
                info["ref"] = target.resource.name
            description[key] = info
        return description


class ResourceRegistry:
    """Resource names mapped to the resources they expose, populated at startup."""

    def __init__(self, session_maker: async_sessionmaker | None = None):
        self._session_maker = session_maker
        self._resources: dict[str, Resource] = {}
        self._by_model: dict[type, Resource] = {}

    def bind(self, session_maker: async_sessionmaker) -> None:
        """Attach the session maker used for models registered without a store."""
        self._session_maker = session_maker
        for resource in self._by_model.values():
            store = resource.store
            if isinstance(store, SQLAlchemyStore) and store.session_maker is None:
                store.session_maker = session_maker

    def register(
        self,
        model: type,
        *,
        name: str | None = None,
        populate: Sequence[str] = (),
        enrichments: Sequence[Enrichment | tuple[str, Callable[[Any], Awaitable[Any]]]] = (),
        store: ResourceStore | None = None,
    ) -> Resource:
        name = name or model.__name__
        if name in self._resources:
            raise ValueError(f"Resource {name!r} is already registered")

        resource = Resource(
            name=name,
            model=model,
            store=store or SQLAlchemyStore(model, self._session_maker),
            populate=tuple(populate),
            enrichments=tuple(Enrichment(*item) for item in enrichments),
            registry=self,
        )
        self._resources[name] = resource
        self._by_model.setdefault(model, resource)
        logger.info("resource_registered", resource=name, model=model.__name__)
        return resource

    def get(self, name: str) -> Resource | None:
        return self._resources.get(name)

    def resource_for_model(self, model: type) -> Resource:
        """The registered resource of ``model``, or an unexposed one for relationship lookups."""
        resource = self._by_model.get(model)
        if resource is None:
            resource = Resource(
                name=model.__name__,
                model=model,
                store=SQLAlchemyStore(model, self._session_maker),
                registry=self,
            )
            self._by_model[model] = resource
        return resource

    def __contains__(self, name: str) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)


def load_registry(path: str) -> ResourceRegistry:
    """Import ``"package.module:attribute"`` naming a registry or a factory returning one."""
    module_name, _, attribute = path.partition(":")
    if not attribute:
        raise ValueError(f"admin_registry must look like 'module:attribute', got {path!r}")

    target = getattr(importlib.import_module(module_name), attribute)
    registry = target() if callable(target) else target
    if not isinstance(registry, ResourceRegistry):
        raise TypeError(f"{path} did not produce a ResourceRegistry")
    return registry
