from typing import Any

from pydantic import BaseModel, Field


class ListEnvelope(BaseModel):
    """Body of the list endpoint."""

    itemCount: int
    items: list[dict[str, Any]]


class DeleteMultipleRequest(BaseModel):
    ids: list[Any] = Field(default_factory=list)


class ImportFromCsvRequest(BaseModel):
    url: str
