"""Response envelope and pagination shared by every endpoint."""
from typing import Generic, TypeVar

from pydantic import BaseModel

from services.utils import total_pages

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Successful response: {"success": true, "data": ...}."""

    success: bool = True
    data: T


class ErrorResponse(BaseModel):
    """Failed response: {"success": false, "error": "..."}."""

    success: bool = False
    error: str


class Pagination(BaseModel):
    """Page position within a result set."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        """Compute derived fields from page, limit, and total."""
        pages = total_pages(total, limit)
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )
