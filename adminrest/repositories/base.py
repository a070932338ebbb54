from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement

# (column key, descending)
SortKey = tuple[str, bool]


class ResourceStore(ABC):
    """Persistence operations the admin layer needs from one resource type.

    Rows travel as plain dicts keyed by column key. Populated relationships
    appear as nested dicts (many-to-one) or lists of dicts (one-to-many).
    """

    identity_key: str

    @abstractmethod
    async def find_ids(self, predicate: ColumnElement[bool]) -> list[Any]:
        """Identities of every row matching ``predicate``."""

    @abstractmethod
    async def count(self, predicate: ColumnElement[bool]) -> int:
        ...

    @abstractmethod
    async def fetch(
        self,
        predicate: ColumnElement[bool],
        *,
        sort: Sequence[SortKey] = (),
        limit: int | None = None,
        skip: int = 0,
        populate: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def find_by_id(self, id: Any, populate: Sequence[str] = ()) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    async def update_by_id(self, id: Any, values: dict[str, Any]) -> dict[str, Any] | None:
        """Merge ``values`` onto a stored row; ``None`` when it does not exist."""

    @abstractmethod
    async def remove(self, id: Any) -> bool:
        ...
