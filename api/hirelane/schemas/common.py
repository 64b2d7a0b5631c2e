from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

ItemT = TypeVar("ItemT")

SortDirection = Literal["asc", "desc"]


class PageOut(BaseModel, Generic[ItemT]):
    items: list[ItemT] = Field(default_factory=list)
    total: int
    offset: int
    limit: int


class StatusEventOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    event_type: str
    actor_id: int | None = None
    from_status: str | None = None
    to_status: str | None = None
    note: str | None = None
    created_at: datetime


class TransitionsOut(BaseModel):
    current_status: str
    allowed: list[str] = Field(default_factory=list)
