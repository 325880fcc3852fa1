"""Search over a user's saved contents."""
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.content import Content
from models.platform import Platform as PlatformRow
from services.tag_service import get_tag_suggestions, normalize_tag_names
from services.utils import apply_content_sorting, apply_tag_filter, escape_ilike


@dataclass
class SearchResult:
    """One page of search results plus paging and timing information."""

    contents: list[Content]
    total: int
    page: int
    limit: int
    query: str
    execution_time_ms: int


async def search_contents(
    db: AsyncSession,
    user_id: UUID,
    query: str = "",
    platform: str | None = None,
    tags: list[str] | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = 1,
    limit: int = 20,
    sort_by: Literal["relevance", "saved_at", "title"] = "saved_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> SearchResult:
    """
    Search a user's contents.

    All filters are applied in the database, so `total` counts exactly the
    matching contents.

    Args:
        db: Database session.
        user_id: User ID to scope contents.
        query: Case-insensitive substring match on title, description or memo.
        platform: Only contents from this platform (by name).
        tags: Only contents carrying any of these tags.
        start_date: Only contents saved at or after this time.
        end_date: Only contents saved at or before this time.
        page: 1-based page number.
        limit: Page size.
        sort_by: "relevance" has no scoring and sorts like "saved_at".
        sort_order: Sort direction.
    """
    started = time.monotonic()
    query = (query or "").strip()

    stmt = select(Content).where(Content.user_id == user_id)

    if query:
        pattern = f"%{escape_ilike(query)}%"
        stmt = stmt.where(or_(
            Content.title.ilike(pattern),
            Content.description.ilike(pattern),
            Content.memo.ilike(pattern),
        ))
    if platform:
        stmt = stmt.where(
            Content.platform_id.in_(select(PlatformRow.id).where(PlatformRow.name == platform)),
        )
    if tags:
        stmt = apply_tag_filter(stmt, normalize_tag_names(tags), "any")
    if start_date is not None:
        stmt = stmt.where(Content.saved_at >= start_date)
    if end_date is not None:
        stmt = stmt.where(Content.saved_at <= end_date)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    stmt = apply_content_sorting(
        stmt.options(selectinload(Content.tag_objects)),
        "saved_at" if sort_by == "relevance" else sort_by,
        sort_order,
    )
    page = max(page, 1)
    result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))

    return SearchResult(
        contents=list(result.scalars().all()),
        total=total,
        page=page,
        limit=limit,
        query=query,
        execution_time_ms=int((time.monotonic() - started) * 1000),
    )


async def get_search_suggestions(
    db: AsyncSession,
    query: str,
    limit: int = 5,
) -> list[str]:
    """Tag-name suggestions for a partial query (at least two characters)."""
    return await get_tag_suggestions(db, query, limit=limit)
