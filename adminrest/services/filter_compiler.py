"""Compile admin filter descriptors into a SQLAlchemy predicate.

Relationship filters (``owner.attr``) are resolved first: each one runs a
query against the related resource and becomes a membership clause on the
local foreign key. The sub-queries run concurrently and all of them finish
before the predicate is handed back.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import ColumnElement, String, and_, cast, true

from adminrest.core.concurrency import gather_settled
from adminrest.core.exceptions import InvalidFilterFieldError, InvalidFilterValueError
from adminrest.core.logging import get_logger
from adminrest.repositories.sqlalchemy_store import column_python_type
from adminrest.resources.registry import Resource
from adminrest.schemas.filtering import FilterDescriptor, FilterOperator

logger = get_logger(__name__)


def _comparison(attribute, operator: FilterOperator, value: Any) -> ColumnElement[bool]:
    if operator is FilterOperator.LIKE:
        # inline flag: honoured by PostgreSQL, MySQL and the SQLite REGEXP function alike
        return attribute.regexp_match(f"(?i){value}")
    if operator is FilterOperator.NOT_EQUAL:
        return attribute != value
    if operator is FilterOperator.GREATER_THAN:
        return attribute > value
    if operator is FilterOperator.LESS_THAN:
        return attribute < value
    if operator is FilterOperator.GREATER_OR_EQUAL:
        return attribute >= value
    if operator is FilterOperator.LESS_OR_EQUAL:
        return attribute <= value
    return attribute == value


def _operand(resource: Resource, key: str, operator: FilterOperator):
    attribute = resource.attribute(key)
    # regex matching runs on text; other columns are matched on their text form
    if operator is FilterOperator.LIKE and column_python_type(resource.column(key)) is not str:
        return cast(attribute, String)
    return attribute


def _coerced_value(resource: Resource, key: str, operator: FilterOperator, value: Any) -> Any:
    # regex patterns are matched as text whatever the column type
    if operator is FilterOperator.LIKE:
        return value
    try:
        return resource.coerce(key, value)
    except (ValueError, PydanticValidationError) as exc:
        reason = exc.errors()[0]["msg"] if isinstance(exc, PydanticValidationError) else str(exc)
        raise InvalidFilterValueError(key, value, reason) from None


def compile_clause(resource: Resource, descriptor: FilterDescriptor) -> ColumnElement[bool]:
    """Clause for one plain (non-relationship) filter."""
    operator = FilterOperator.parse(descriptor.operator, descriptor.field)
    if resource.column(descriptor.field) is None:
        raise InvalidFilterFieldError(descriptor.field, resource.name)

    attribute = resource.attribute(descriptor.field)
    if operator is FilterOperator.TRUE:
        return attribute.is_(True)
    if operator is FilterOperator.FALSE:
        return attribute.is_(False)

    value = _coerced_value(resource, descriptor.field, operator, descriptor.value)
    return _comparison(_operand(resource, descriptor.field, operator), operator, value)


async def _resolve_relationship(resource: Resource, descriptor: FilterDescriptor) -> ColumnElement[bool]:
    owner, related_field = descriptor.field.split(".", 1)
    operator = FilterOperator.parse(descriptor.operator, descriptor.field)

    target = resource.relationship_target(owner)
    if target is None:
        raise InvalidFilterFieldError(owner, resource.name)
    related = target.resource
    if related.column(related_field) is None:
        raise InvalidFilterFieldError(related_field, related.name)

    # related lookups support like / not-equal / equals only
    if operator not in (FilterOperator.LIKE, FilterOperator.NOT_EQUAL):
        operator = FilterOperator.EQUALS
    value = _coerced_value(related, related_field, operator, descriptor.value)
    sub_predicate = _comparison(_operand(related, related_field, operator), operator, value)

    ids = await related.store.find_ids(sub_predicate)
    logger.debug(
        "relationship_filter_resolved",
        resource=resource.name,
        field=descriptor.field,
        matches=len(ids),
    )
    return resource.attribute(target.local_key).in_(ids)


async def compile_filters(resource: Resource, filters: Sequence[FilterDescriptor]) -> ColumnElement[bool]:
    """Build the conjunction of every filter; no filters match every row."""
    relationship_filters = [f for f in filters if f.is_relationship]
    plain_filters = [f for f in filters if not f.is_relationship]

    # validate plain filters before any relationship query runs
    plain_clauses = [compile_clause(resource, descriptor) for descriptor in plain_filters]

    membership_clauses = await gather_settled(
        *(_resolve_relationship(resource, descriptor) for descriptor in relationship_filters)
    )

    clauses = [*membership_clauses, *plain_clauses]
    if not clauses:
        return true()
    return and_(*clauses)
