from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Generic, List, TypeVar

from pydantic import BaseModel, Field

# --- Numeric primitives ---
Money = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]
PositiveInt = Annotated[int, Field(ge=1)]

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=-(-total // limit) if limit else 0)


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    pagination: Pagination
