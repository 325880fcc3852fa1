"""Tests for tag normalization, creation, counts and suggestions."""
from collections.abc import Awaitable, Callable

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.content import Content
from models.tag import Tag
from models.user import User
from schemas.tag import TagCount
from services.tag_service import (
    get_or_create_tags,
    get_tag_suggestions,
    get_user_tags_with_counts,
    normalize_tag_name,
    normalize_tag_names,
)

MakeContent = Callable[..., Awaitable[Content]]


@pytest.mark.parametrize(('raw', 'expected'), [
    ('Python', 'python'),
    ('  Machine   Learning ', 'machine learning'),
    ('tab\tand\nnewline', 'tab and newline'),
    ('   ', None),
    ('', None),
])
def test__normalize_tag_name(raw: str, expected: str | None) -> None:
    """Trimmed, lowercased, whitespace collapsed; blank names are rejected."""
    assert normalize_tag_name(raw) == expected


def test__normalize_tag_name__truncates() -> None:
    """Names are capped at 100 characters."""
    assert len(normalize_tag_name('a' * 150)) == 100


def test__normalize_tag_names__dedupes_in_order() -> None:
    """First occurrence wins the position."""
    assert normalize_tag_names(['B', 'a', ' b ', '', 'A', 'c']) == ['b', 'a', 'c']


async def test__get_or_create_tags__creates_and_reuses(db_session: AsyncSession) -> None:
    """Existing tags are reused, missing ones created, order follows the input."""
    existing = Tag(name='existing')
    db_session.add(existing)
    await db_session.flush()

    tags = await get_or_create_tags(db_session, ['New', 'EXISTING', 'new'])

    assert [tag.name for tag in tags] == ['new', 'existing']
    assert tags[1].id == existing.id
    all_names = (await db_session.execute(select(Tag.name))).scalars().all()
    assert sorted(all_names) == ['existing', 'new']


async def test__get_or_create_tags__empty(db_session: AsyncSession) -> None:
    """No usable names, no tags."""
    assert await get_or_create_tags(db_session, ['  ', '']) == []


async def test__get_user_tags_with_counts(
    db_session: AsyncSession, test_user: User, make_content: MakeContent,
) -> None:
    """Counts cover only the user's contents; ordered by count then name."""
    other = User(telegram_id='3003')
    db_session.add(other)
    await db_session.flush()

    await make_content('https://example.com/1', tags=['python', 'web'])
    await make_content('https://example.com/2', tags=['python', 'async'])
    await make_content('https://example.com/3', tags=['web'])
    await make_content('https://example.com/4', tags=['python', 'rust'], user_id=other.id)

    counts = await get_user_tags_with_counts(db_session, test_user.id)

    assert counts == [
        TagCount(name='python', count=2),
        TagCount(name='web', count=2),
        TagCount(name='async', count=1),
    ]


async def test__get_tag_suggestions(db_session: AsyncSession) -> None:
    """Substring matches, shortest first, limited."""
    await get_or_create_tags(db_session, ['cooking', 'cook', 'cookbook', 'bookkeeping', 'travel'])

    assert await get_tag_suggestions(db_session, 'COOK') == ['cook', 'cooking', 'cookbook']
    assert await get_tag_suggestions(db_session, 'book', limit=1) == ['cookbook']


@pytest.mark.parametrize('query', ['', ' ', 'c', ' c '])
async def test__get_tag_suggestions__short_query(db_session: AsyncSession, query: str) -> None:
    """Queries under two characters return nothing."""
    await get_or_create_tags(db_session, ['cooking'])
    assert await get_tag_suggestions(db_session, query) == []
