"""Folder endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.common import ApiResponse, Pagination
from schemas.content import ContentResponse, SortOrder
from schemas.folder import (
    FolderContentsChange,
    FolderContentsRequest,
    FolderCreate,
    FolderDetailResponse,
    FolderEntryResponse,
    FolderReorderRequest,
    FolderResponse,
    FolderSortBy,
    FolderUpdate,
)
from services import folder_service
from services.folder_service import (
    DefaultFolderDeleteError,
    FolderNotFoundError,
    FolderWithStats,
)

router = APIRouter(prefix="/folders", tags=["folders"])


def _folder_response(stats: FolderWithStats) -> FolderResponse:
    return FolderResponse.model_validate(stats.folder).model_copy(update={
        "content_count": stats.content_count,
        "latest_added_at": stats.latest_added_at,
    })


@router.get("", response_model=ApiResponse[list[FolderResponse]])
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[FolderResponse]]:
    """List the current user's folders in display order, with content counts."""
    folders = await folder_service.get_user_folders(db, current_user.id)
    return ApiResponse(data=[_folder_response(stats) for stats in folders])


@router.post("", response_model=ApiResponse[FolderResponse], status_code=201)
async def create_folder(
    data: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[FolderResponse]:
    """Create a folder at the end of the folder order."""
    folder = await folder_service.create_folder(
        db,
        current_user.id,
        name=data.name,
        description=data.description,
        color=data.color,
        icon=data.icon,
    )
    return ApiResponse(data=FolderResponse.model_validate(folder))


@router.patch("/reorder", response_model=ApiResponse[None])
async def reorder_folders(
    data: FolderReorderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Set the folder order; the first id gets position 1."""
    await folder_service.reorder_folders(db, current_user.id, data.folder_ids)
    return ApiResponse(data=None)


@router.get("/{folder_id}", response_model=ApiResponse[FolderDetailResponse])
async def get_folder(
    folder_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: FolderSortBy = Query(default="added_at"),
    sort_order: SortOrder = Query(default="desc"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[FolderDetailResponse]:
    """Get a folder with one page of its contents."""
    try:
        stats = await folder_service.get_folder_stats(db, current_user.id, folder_id)
        _, entries, total = await folder_service.get_folder_with_contents(
            db,
            current_user.id,
            folder_id,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return ApiResponse(data=FolderDetailResponse(
        folder=_folder_response(stats),
        contents=[
            FolderEntryResponse(
                content=ContentResponse.model_validate(entry.content),
                added_at=entry.added_at,
                sort_order=entry.sort_order,
            )
            for entry in entries
        ],
        pagination=Pagination.build(page, limit, total),
    ))


@router.patch("/{folder_id}", response_model=ApiResponse[FolderResponse])
async def update_folder(
    folder_id: UUID,
    data: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[FolderResponse]:
    """Update a folder."""
    try:
        folder = await folder_service.update_folder(
            db, current_user.id, folder_id, data.model_dump(exclude_unset=True),
        )
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return ApiResponse(data=FolderResponse.model_validate(folder))


@router.delete("/{folder_id}", response_model=ApiResponse[None])
async def delete_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete a folder (its contents stay saved). The default folder cannot be deleted."""
    try:
        await folder_service.delete_folder(db, current_user.id, folder_id)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    except DefaultFolderDeleteError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=None)


@router.post("/{folder_id}/contents", response_model=ApiResponse[FolderContentsChange])
async def add_folder_contents(
    folder_id: UUID,
    data: FolderContentsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[FolderContentsChange]:
    """Add contents to a folder; ones already in it are skipped."""
    try:
        added = await folder_service.add_contents_to_folder(
            db, current_user.id, folder_id, data.content_ids,
        )
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return ApiResponse(data=FolderContentsChange(count=added))


@router.delete("/{folder_id}/contents", response_model=ApiResponse[FolderContentsChange])
async def remove_folder_contents(
    folder_id: UUID,
    data: FolderContentsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[FolderContentsChange]:
    """Remove contents from a folder."""
    try:
        removed = await folder_service.remove_contents_from_folder(
            db, current_user.id, folder_id, data.content_ids,
        )
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return ApiResponse(data=FolderContentsChange(count=removed))
