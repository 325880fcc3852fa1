"""Shared utility functions for service layer."""
from typing import Literal

from sqlalchemy import Select, exists, select

from models.content import Content
from models.tag import Tag, content_tags


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    PostgreSQL LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_tag_filter(
    query: Select,
    tag_names: list[str],
    tag_match: Literal["all", "any"] = "any",
) -> Select:
    """
    Restrict a Content query to contents carrying the given (normalized) tags.

    "any" keeps contents with at least one of the tags; "all" requires every tag.
    """
    if not tag_names:
        return query

    if tag_match == "all":
        for tag_name in tag_names:
            subq = (
                select(content_tags.c.content_id)
                .join(Tag, content_tags.c.tag_id == Tag.id)
                .where(content_tags.c.content_id == Content.id, Tag.name == tag_name)
            )
            query = query.where(exists(subq))
        return query

    subq = (
        select(content_tags.c.content_id)
        .join(Tag, content_tags.c.tag_id == Tag.id)
        .where(content_tags.c.content_id == Content.id, Tag.name.in_(tag_names))
    )
    return query.where(exists(subq))


CONTENT_SORT_COLUMNS = {
    "saved_at": Content.saved_at,
    "created_at": Content.created_at,
    "title": Content.title,
}


def apply_content_sorting(
    query: Select,
    sort_by: str,
    sort_order: Literal["asc", "desc"],
) -> Select:
    """Apply sorting with tiebreakers (saved_at, then id); unknown keys sort by saved_at."""
    sort_column = CONTENT_SORT_COLUMNS.get(sort_by, Content.saved_at)
    if sort_order == "asc":
        return query.order_by(
            sort_column.asc().nulls_last(),
            Content.saved_at.asc(),
            Content.id.asc(),
        )
    return query.order_by(
        sort_column.desc().nulls_last(),
        Content.saved_at.desc(),
        Content.id.desc(),
    )


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for `total` items at `limit` per page."""
    if limit <= 0:
        return 0
    return (total + limit - 1) // limit
