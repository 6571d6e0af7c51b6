from __future__ import annotations

from math import ceil
from typing import Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class Pagination(BaseModel, Generic[T]):
    items: Sequence[T]
    page: int = 1
    page_size: int = 25
    total: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        return ceil(self.total / self.page_size) if self.page_size else 0


class MessageResponse(BaseModel):
    detail: str
    code: Optional[str] = None
