"""Pydantic schemas for search endpoints."""
from pydantic import BaseModel

from schemas.common import Pagination
from schemas.content import ContentResponse


class SearchResponse(BaseModel):
    """Schema for a page of search results."""

    results: list[ContentResponse]
    pagination: Pagination
    query: str
    execution_time_ms: int


class SuggestionsResponse(BaseModel):
    """Schema for search autocomplete suggestions."""

    suggestions: list[str]
