from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import JSON, ColumnElement, Column, func, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from adminrest.core.exceptions import ValidationError
from adminrest.core.logging import get_logger
from adminrest.repositories.base import ResourceStore, SortKey

logger = get_logger(__name__)


@lru_cache(maxsize=None)
def _adapter(python_type: type) -> TypeAdapter:
    return TypeAdapter(python_type)


def column_python_type(column: Column) -> type | None:
    """Python type values of ``column`` are coerced to, ``None`` for free-form columns."""
    if isinstance(column.type, JSON):
        return None
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def coerce_column_value(column: Column, value: Any) -> Any:
    """Coerce a request or CSV value to the Python type of ``column``.

    Raises ``ValueError`` when the value cannot be represented.
    """
    python_type = column_python_type(column)
    if value is None or python_type is None:
        return value

    if python_type is str:
        if isinstance(value, (dict, list)):
            raise ValueError("expected a string")
        return value if isinstance(value, str) else str(value)

    # an empty CSV cell or form field means "no value" for typed columns
    if value == "":
        return None

    if isinstance(value, python_type) and not (python_type is int and isinstance(value, bool)):
        return value
    return _adapter(python_type).validate_python(value)


def row_to_dict(obj: Any, populate: Sequence[str] = ()) -> dict[str, Any]:
    """Plain dict of a mapped row's columns plus any populated relationships."""
    mapper = sa_inspect(obj).mapper
    data = {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}

    for name in populate:
        related = getattr(obj, name)
        if related is None:
            data[name] = None
        elif isinstance(related, (list, set, tuple)):
            data[name] = [row_to_dict(item) for item in related]
        else:
            data[name] = row_to_dict(related)
    return data


class SQLAlchemyStore(ResourceStore):
    """ResourceStore over one mapped model.

    Every operation runs in its own session and transaction so that
    concurrent operations never share a session and a failing write never
    poisons its siblings.
    """

    def __init__(self, model: type, session_maker: async_sessionmaker):
        self.model = model
        self.session_maker = session_maker
        self._mapper = sa_inspect(model)
        if len(self._mapper.primary_key) != 1:
            raise ValueError(f"{model.__name__} must have exactly one primary key column")
        pk_column = self._mapper.primary_key[0]
        self.identity_key = self._mapper.get_property_by_column(pk_column).key
        self._columns: dict[str, Column] = {
            attr.key: attr.columns[0] for attr in self._mapper.column_attrs
        }

    @property
    def _identity(self):
        return getattr(self.model, self.identity_key)

    def _coerce_id(self, id: Any) -> Any:
        try:
            return coerce_column_value(self._columns[self.identity_key], id)
        except ValueError:
            return None

    def _coerce(self, values: dict[str, Any]) -> dict[str, Any]:
        coerced = {}
        for key, value in values.items():
            column = self._columns.get(key)
            if column is None:
                raise ValidationError(key, f"{self.model.__name__} has no field {key}")
            try:
                coerced[key] = coerce_column_value(column, value)
            except (ValueError, PydanticValidationError) as exc:
                raise ValidationError(key, _reason(exc), {"field": key}) from None
        return coerced

    def _loader_options(self, populate: Sequence[str]) -> list:
        return [selectinload(getattr(self.model, name)) for name in populate]

    async def find_ids(self, predicate: ColumnElement[bool]) -> list[Any]:
        async with self.session_maker() as session:
            result = await session.execute(select(self._identity).where(predicate))
            return list(result.scalars().all())

    async def count(self, predicate: ColumnElement[bool]) -> int:
        async with self.session_maker() as session:
            result = await session.execute(
                select(func.count()).select_from(self.model).where(predicate)
            )
            return result.scalar() or 0

    async def fetch(
        self,
        predicate: ColumnElement[bool],
        *,
        sort: Sequence[SortKey] = (),
        limit: int | None = None,
        skip: int = 0,
        populate: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        query = select(self.model).where(predicate).options(*self._loader_options(populate))

        for key, descending in sort:
            attr = getattr(self.model, key)
            query = query.order_by(attr.desc() if descending else attr.asc())

        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_maker() as session:
            result = await session.execute(query)
            return [row_to_dict(obj, populate) for obj in result.scalars().all()]

    async def find_by_id(self, id: Any, populate: Sequence[str] = ()) -> dict[str, Any] | None:
        id = self._coerce_id(id)
        if id is None:
            return None

        async with self.session_maker() as session:
            result = await session.execute(
                select(self.model)
                .options(*self._loader_options(populate))
                .where(self._identity == id)
            )
            obj = result.scalar_one_or_none()
            return row_to_dict(obj, populate) if obj is not None else None

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        values = self._coerce(values)

        async with self.session_maker() as session:
            obj = self.model(**values)
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
            logger.debug("row_created", model=self.model.__name__, id=getattr(obj, self.identity_key))
            return row_to_dict(obj)

    async def update_by_id(self, id: Any, values: dict[str, Any]) -> dict[str, Any] | None:
        id = self._coerce_id(id)
        if id is None:
            return None
        values = self._coerce(values)

        async with self.session_maker() as session:
            obj = await session.get(self.model, id)
            if obj is None:
                return None
            for key, value in values.items():
                setattr(obj, key, value)
            await session.commit()
            await session.refresh(obj)
            logger.debug("row_updated", model=self.model.__name__, id=id)
            return row_to_dict(obj)

    async def remove(self, id: Any) -> bool:
        id = self._coerce_id(id)
        if id is None:
            return False

        async with self.session_maker() as session:
            obj = await session.get(self.model, id)
            if obj is None:
                return False
            await session.delete(obj)
            await session.commit()
            logger.debug("row_removed", model=self.model.__name__, id=id)
            return True


def _reason(exc: Exception) -> str:
    if isinstance(exc, PydanticValidationError):
        return "; ".join(error["msg"] for error in exc.errors())
    return str(exc)
