"""Tag endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.common import ApiResponse
from schemas.tag import TagListResponse
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=ApiResponse[TagListResponse])
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[TagListResponse]:
    """Tags on the current user's contents, most used first."""
    tags = await tag_service.get_user_tags_with_counts(db, current_user.id)
    return ApiResponse(data=TagListResponse(tags=tags))
