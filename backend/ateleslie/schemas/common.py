import math
from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint."""
    success: bool = True
    message: str = ""
    data: Optional[T] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit > 0 else 1,
            total_items=total,
            limit=limit,
        )


class PaginatedData(CamelModel, Generic[T]):
    items: List[T]
    pagination: Pagination


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert aware input accordingly."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
