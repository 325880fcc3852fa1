"""Pydantic schemas for folder endpoints."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from schemas.common import Pagination
from schemas.content import ContentResponse

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class FolderCreate(BaseModel):
    """Schema for creating a folder."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: str | None = Field(default=None, max_length=16)


class FolderUpdate(BaseModel):
    """Schema for updating a folder; fields left out are not touched."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: str | None = Field(default=None, max_length=16)
    sort_order: int | None = Field(default=None, ge=0)


class FolderResponse(BaseModel):
    """Schema for a folder with its content count."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    color: str
    icon: str | None
    is_default: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime
    content_count: int = 0
    latest_added_at: datetime | None = None


class FolderEntryResponse(BaseModel):
    """A content in a folder, with its position and when it was added."""

    content: ContentResponse
    added_at: datetime
    sort_order: int


class FolderDetailResponse(BaseModel):
    """Schema for a folder and one page of its contents."""

    folder: FolderResponse
    contents: list[FolderEntryResponse]
    pagination: Pagination


class FolderContentsRequest(BaseModel):
    """Schema for adding or removing contents."""

    content_ids: list[UUID] = Field(..., min_length=1)


class FolderContentsChange(BaseModel):
    """How many memberships an add/remove changed."""

    count: int


class FolderReorderRequest(BaseModel):
    """Folder ids in their new display order."""

    folder_ids: list[UUID] = Field(..., min_length=1)


FolderSortBy = Literal["added_at", "sort_order"]
