"""Service layer for tag operations."""
import re
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from models.content import Content
from models.tag import Tag, content_tags
from schemas.tag import TagCount
from services.utils import escape_ilike

MAX_TAG_LENGTH = 100
MIN_SUGGESTION_QUERY_LENGTH = 2

_WHITESPACE = re.compile(r"\s+")


def normalize_tag_name(name: str) -> str | None:
    """
    Canonical stored form of a tag name: trimmed, lowercased, inner whitespace
    collapsed to single spaces, at most 100 characters.

    Returns None for names that are empty after trimming.
    """
    if not isinstance(name, str):
        return None
    normalized = _WHITESPACE.sub(" ", name.strip().lower())[:MAX_TAG_LENGTH].strip()
    return normalized or None


def normalize_tag_names(names: Iterable[str]) -> list[str]:
    """Normalize and dedupe tag names, keeping first-seen order."""
    seen: dict[str, None] = {}
    for name in names:
        normalized = normalize_tag_name(name)
        if normalized is not None:
            seen.setdefault(normalized, None)
    return list(seen)


async def get_or_create_tags(
    db: AsyncSession,
    tag_names: Iterable[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Tags are shared across users. Missing names are inserted with
    ON CONFLICT DO NOTHING, so a concurrent request creating the same tag
    cannot fail this one; the rows are then read back.

    Args:
        db: Database session.
        tag_names: Raw tag names (normalized here).

    Returns:
        Tag objects in the order of the normalized names.
    """
    normalized = normalize_tag_names(tag_names)
    if not normalized:
        return []

    result = await db.execute(select(Tag).where(Tag.name.in_(normalized)))
    existing = {tag.name: tag for tag in result.scalars()}

    missing = [name for name in normalized if name not in existing]
    if missing:
        await db.execute(
            pg_insert(Tag)
            .values([{"name": name} for name in missing])
            .on_conflict_do_nothing(index_elements=["name"]),
        )
        result = await db.execute(select(Tag).where(Tag.name.in_(missing)))
        existing.update({tag.name: tag for tag in result.scalars()})

    return [existing[name] for name in normalized if name in existing]


async def get_user_tags_with_counts(
    db: AsyncSession,
    user_id: UUID,
) -> list[TagCount]:
    """
    Get the tags used on a user's contents with their usage counts.

    Tags are global, so only tags attached to at least one of this user's
    contents are returned.

    Returns:
        List of TagCount objects sorted by count desc, then name asc.
    """
    count = func.count(content_tags.c.content_id).label("count")
    result = await db.execute(
        select(Tag.name, count)
        .join(content_tags, Tag.id == content_tags.c.tag_id)
        .join(Content, content_tags.c.content_id == Content.id)
        .where(Content.user_id == user_id)
        .group_by(Tag.id, Tag.name)
        .order_by(count.desc(), Tag.name.asc()),
    )
    return [TagCount(name=row.name, count=row.count) for row in result]


async def get_tag_suggestions(
    db: AsyncSession,
    query: str,
    limit: int = 5,
) -> list[str]:
    """
    Tag names containing `query` (case-insensitive), for search autocomplete.

    Queries shorter than two characters (after trimming) return nothing.
    """
    query = (query or "").strip()
    if len(query) < MIN_SUGGESTION_QUERY_LENGTH:
        return []

    pattern = f"%{escape_ilike(query.lower())}%"
    result = await db.execute(
        select(Tag.name)
        .where(Tag.name.ilike(pattern))
        .order_by(func.length(Tag.name), Tag.name)
        .limit(limit),
    )
    return list(result.scalars().all())
