"""Search endpoints."""
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.routers.contents import split_tags
from models.user import User
from schemas.common import ApiResponse, Pagination
from schemas.content import ContentResponse, SortOrder
from schemas.search import SearchResponse, SuggestionsResponse
from services import search_service
from services.url_normalizer import Platform

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=ApiResponse[SearchResponse])
async def search(
    q: str = Query(default="", description="Matches title, description and memo"),
    platform: Platform | None = Query(default=None),
    tags: list[str] = Query(default=[], description="Any of these tags"),
    start_date: datetime | None = Query(default=None, description="Saved at or after"),
    end_date: datetime | None = Query(default=None, description="Saved at or before"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["relevance", "saved_at", "title"] = Query(default="saved_at"),
    sort_order: SortOrder = Query(default="desc"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[SearchResponse]:
    """Search the current user's contents."""
    result = await search_service.search_contents(
        db,
        current_user.id,
        query=q,
        platform=platform,
        tags=split_tags(tags) or None,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse(data=SearchResponse(
        results=[ContentResponse.model_validate(content) for content in result.contents],
        pagination=Pagination.build(result.page, result.limit, result.total),
        query=result.query,
        execution_time_ms=result.execution_time_ms,
    ))


@router.get("/suggestions", response_model=ApiResponse[SuggestionsResponse])
async def suggestions(
    q: str = Query(default=""),
    limit: int = Query(default=5, ge=1, le=20),
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[SuggestionsResponse]:
    """Tag-name suggestions for a partial query (at least two characters)."""
    names = await search_service.get_search_suggestions(db, q, limit=limit)
    return ApiResponse(data=SuggestionsResponse(suggestions=names))
