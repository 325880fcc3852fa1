"""Pydantic schemas for content endpoints."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.common import Pagination
from schemas.metadata import GeneratedTagResponse, MetadataResponse
from services.tag_service import normalize_tag_names


class PlatformResponse(BaseModel):
    """Display information of a content's platform."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    display_name: str
    icon: str | None
    color_bg: str | None
    color_text: str | None


class ContentResponse(BaseModel):
    """Schema for a saved content."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    title: str | None
    description: str | None
    thumbnail_url: str | None
    creator_name: str | None
    creator_url: str | None
    memo: str | None
    platform: PlatformResponse
    tags: list[str]
    saved_at: datetime
    created_at: datetime
    updated_at: datetime


class ContentCreate(BaseModel):
    """Schema for saving a URL through the save pipeline."""

    url: str = Field(..., min_length=1, max_length=2048)
    memo: str | None = Field(default=None, max_length=2000)


class ContentUpdate(BaseModel):
    """
    Schema for editing a content.

    Fields left out of the request are not touched; an explicit null clears
    the field. `tags` replaces the whole tag set.
    """

    title: str | None = Field(default=None, max_length=500)
    description: str | None = None
    memo: str | None = Field(default=None, max_length=2000)
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize tags (trimmed, lowercased, deduped); empty names are dropped."""
        if v is None:
            return None
        if not isinstance(v, list):
            raise ValueError("tags must be a list of strings")
        return normalize_tag_names(tag for tag in v if isinstance(tag, str))


class ContentListResponse(BaseModel):
    """Schema for a page of contents."""

    items: list[ContentResponse]
    pagination: Pagination


class SaveContentResponse(BaseModel):
    """Schema for the result of saving a URL."""

    content: ContentResponse
    metadata: MetadataResponse | None
    tags: list[GeneratedTagResponse]


class MonthCount(BaseModel):
    """Number of contents saved in one month ('YYYY-MM')."""

    month: str
    count: int


class ContentStats(BaseModel):
    """Schema for library statistics."""

    total: int
    by_platform: dict[str, int]
    by_month: list[MonthCount]


ContentSortBy = Literal["saved_at", "created_at", "title"]
SortOrder = Literal["asc", "desc"]
