"""Saved content endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.common import ApiResponse, Pagination
from schemas.content import (
    ContentCreate,
    ContentListResponse,
    ContentResponse,
    ContentSortBy,
    ContentStats,
    ContentUpdate,
    SaveContentResponse,
    SortOrder,
)
from schemas.folder import FolderResponse
from schemas.metadata import GeneratedTagResponse, MetadataResponse
from services import content_service, folder_service
from services.save_flow import SaveErrorCode, save_content_flow
from services.url_normalizer import Platform

router = APIRouter(prefix="/contents", tags=["contents"])

SAVE_ERROR_STATUS = {
    SaveErrorCode.VALIDATION: 400,
    SaveErrorCode.DUPLICATE: 409,
    SaveErrorCode.METADATA_FAILURE: 422,
    SaveErrorCode.PERSISTENCE_FAILURE: 500,
}


def split_tags(tags: list[str]) -> list[str]:
    """Accept both repeated `tags=` params and comma-separated values."""
    return [part.strip() for tag in tags for part in tag.split(",") if part.strip()]


@router.post("", response_model=ApiResponse[SaveContentResponse], status_code=201)
async def create_content(
    data: ContentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[SaveContentResponse]:
    """
    Save a URL: extract its metadata, auto-tag it, and store it.

    - **409**: the URL is already saved
    - **400**: the URL is invalid
    - **422**: metadata could not be extracted
    """
    result = await save_content_flow(db, data.url, user_id=current_user.id, memo=data.memo)
    if not result.success:
        raise HTTPException(
            status_code=SAVE_ERROR_STATUS.get(result.code, 500),
            detail=result.error,
        )
    return ApiResponse(data=SaveContentResponse(
        content=ContentResponse.model_validate(result.content),
        metadata=MetadataResponse.model_validate(result.metadata) if result.metadata else None,
        tags=[GeneratedTagResponse.model_validate(tag) for tag in result.tags],
    ))


@router.get("", response_model=ApiResponse[ContentListResponse])
async def list_contents(
    platform: Platform | None = Query(default=None, description="Filter by platform"),
    tags: list[str] = Query(default=[], description="Filter by tags (any match)"),
    search: str | None = Query(default=None, description="Match title or description"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: ContentSortBy = Query(default="saved_at"),
    sort_order: SortOrder = Query(default="desc"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[ContentListResponse]:
    """List the current user's contents with filtering, sorting and pagination."""
    contents, total = await content_service.list_contents(
        db,
        current_user.id,
        platform=platform,
        tags=split_tags(tags) or None,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse(data=ContentListResponse(
        items=[ContentResponse.model_validate(content) for content in contents],
        pagination=Pagination.build(page, limit, total),
    ))


@router.get("/stats", response_model=ApiResponse[ContentStats])
async def get_content_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[ContentStats]:
    """Totals by platform and by month."""
    stats = await content_service.get_content_stats(db, current_user.id)
    return ApiResponse(data=ContentStats.model_validate(stats))


@router.get("/{content_id}", response_model=ApiResponse[ContentResponse])
async def get_content(
    content_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[ContentResponse]:
    """Get a single content by ID."""
    content = await content_service.get_content(db, current_user.id, content_id)
    if content is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return ApiResponse(data=ContentResponse.model_validate(content))


@router.patch("/{content_id}", response_model=ApiResponse[ContentResponse])
async def update_content(
    content_id: UUID,
    data: ContentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[ContentResponse]:
    """Update title, description, memo, or replace tags."""
    try:
        content = await content_service.update_content(
            db,
            current_user.id,
            content_id,
            title=data.title,
            description=data.description,
            memo=data.memo,
            tags=data.tags,
            fields_set=data.model_fields_set,
        )
    except content_service.ContentNotFoundError:
        raise HTTPException(status_code=404, detail="Content not found")
    return ApiResponse(data=ContentResponse.model_validate(content))


@router.delete("/{content_id}", response_model=ApiResponse[None])
async def delete_content(
    content_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete a content."""
    try:
        await content_service.delete_content(db, current_user.id, content_id)
    except content_service.ContentNotFoundError:
        raise HTTPException(status_code=404, detail="Content not found")
    return ApiResponse(data=None)


@router.get("/{content_id}/folders", response_model=ApiResponse[list[FolderResponse]])
async def get_content_folders(
    content_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[FolderResponse]]:
    """Folders containing a content."""
    if await content_service.get_content(db, current_user.id, content_id) is None:
        raise HTTPException(status_code=404, detail="Content not found")
    folders = await folder_service.get_content_folders(db, current_user.id, content_id)
    return ApiResponse(data=[FolderResponse.model_validate(folder) for folder in folders])
