"""Service layer for users, platforms and saved contents."""
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.content import Content
from models.platform import Platform as PlatformRow
from models.user import User
from services.metadata_extractor import ExtractedMetadata
from services.tag_service import get_or_create_tags, normalize_tag_names
from services.url_normalizer import PLATFORM_INFO, Platform
from services.utils import apply_content_sorting, apply_tag_filter, escape_ilike

logger = logging.getLogger(__name__)

CONTENT_UNIQUE_CONSTRAINT = "uq_contents_user_id_url"


class DuplicateContentError(Exception):
    """Raised when the user has already saved this canonical URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__("Content already saved")


class ContentNotFoundError(Exception):
    """Raised when a content does not exist or belongs to another user."""

    def __init__(self, content_id: UUID) -> None:
        self.content_id = content_id
        super().__init__(f"Content {content_id} not found")


class InvalidPlatformError(Exception):
    """Raised when a platform name is not one of the known platforms."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid platform: {name}")


async def get_or_create_telegram_user(
    db: AsyncSession,
    telegram_id: str,
    username: str | None = None,
) -> User:
    """
    Get the user for a Telegram id, creating it on first contact.

    Handles the race where two messages from a new user arrive at once: the
    insert runs in a savepoint, and on a unique violation the row created by
    the other request is read back instead.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    telegram_id = str(telegram_id)
    user = await db.scalar(select(User).where(User.telegram_id == telegram_id))

    if user is None:
        user = User(telegram_id=telegram_id, telegram_username=username)
        try:
            async with db.begin_nested():
                db.add(user)
                await db.flush()
        except IntegrityError:
            logger.info("Telegram user %s created concurrently, fetching existing row", telegram_id)
            user = (
                await db.execute(select(User).where(User.telegram_id == telegram_id))
            ).scalar_one()

    if username and user.telegram_username != username:
        user.telegram_username = username
        await db.flush()
    return user


@dataclass(frozen=True)
class PlatformRecord:
    """Cached identity and display data of a platform row."""

    id: UUID
    name: str
    display_name: str
    icon: str | None


def _to_record(row: PlatformRow) -> PlatformRecord:
    return PlatformRecord(id=row.id, name=row.name, display_name=row.display_name, icon=row.icon)


class PlatformCache:
    """
    Per-process map from platform name to its row.

    Best effort: a miss falls through to the database, and a platform missing
    from the table is created from PLATFORM_INFO. A row created here is not
    cached, since the caller's transaction may still roll it back. Call
    invalidate() whenever the platforms table may have changed underneath
    the process.
    """

    def __init__(self) -> None:
        self._records: dict[str, PlatformRecord] = {}

    def invalidate(self) -> None:
        """Drop every cached entry."""
        self._records.clear()

    async def get(self, db: AsyncSession, name: str) -> PlatformRecord:
        """
        Resolve a platform name to its row.

        Raises:
            InvalidPlatformError: If the name is not a known platform.
        """
        try:
            platform = Platform(name)
        except ValueError as e:
            raise InvalidPlatformError(name) from e

        cached = self._records.get(platform.value)
        if cached is not None:
            return cached

        row = await db.scalar(select(PlatformRow).where(PlatformRow.name == platform.value))
        if row is None:
            info = PLATFORM_INFO[platform]
            logger.warning("Platform row '%s' missing, creating it", platform.value)
            await db.execute(
                pg_insert(PlatformRow)
                .values(
                    name=platform.value,
                    display_name=info.display_name,
                    icon=info.icon,
                    color_bg=info.color_bg,
                    color_text=info.color_text,
                )
                .on_conflict_do_nothing(index_elements=["name"]),
            )
            row = (
                await db.execute(select(PlatformRow).where(PlatformRow.name == platform.value))
            ).scalar_one()
            return _to_record(row)

        record = _to_record(row)
        self._records[platform.value] = record
        return record


platform_cache = PlatformCache()


async def _platform_row(db: AsyncSession, name: str) -> PlatformRow:
    """
    Load the platform row for a name through the cache.

    A cached id whose row no longer exists (it was created in a transaction
    that rolled back) is dropped and the lookup is repeated.
    """
    by_id = select(PlatformRow).execution_options(populate_existing=True)
    record = await platform_cache.get(db, name)
    row = await db.scalar(by_id.where(PlatformRow.id == record.id))
    if row is None:
        logger.warning("Cached platform '%s' no longer exists, reloading", name)
        platform_cache.invalidate()
        record = await platform_cache.get(db, name)
        row = (await db.execute(by_id.where(PlatformRow.id == record.id))).scalar_one()
    return row


def _content_query(user_id: UUID):  # noqa: ANN202
    return (
        select(Content)
        .options(selectinload(Content.tag_objects))
        .where(Content.user_id == user_id)
    )


async def get_content_by_url(
    db: AsyncSession,
    user_id: UUID,
    url: str,
) -> Content | None:
    """Get a user's content by canonical URL. Returns None if not saved."""
    return await db.scalar(_content_query(user_id).where(Content.url == url))


async def create_content(
    db: AsyncSession,
    user_id: UUID,
    metadata: ExtractedMetadata,
    tag_names: list[str] | None = None,
    memo: str | None = None,
) -> Content:
    """
    Persist a content for a user from extracted metadata, with its tags.

    Flow:
    1. Pre-check (user, canonical URL) and refuse duplicates
    2. Insert the content row inside a savepoint; the unique constraint is the
       authoritative duplicate check when two saves race past step 1
    3. Get or create the (global) tags and attach them

    Raises:
        DuplicateContentError: If the user already saved this URL.
        InvalidPlatformError: If the metadata names an unknown platform.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    url = metadata.normalized_url
    if await get_content_by_url(db, user_id, url) is not None:
        raise DuplicateContentError(url)

    content = Content(
        user_id=user_id,
        platform=await _platform_row(db, metadata.platform),
        url=url,
        title=metadata.title[:500] if metadata.title else None,
        description=metadata.description,
        thumbnail_url=metadata.image,
        creator_name=metadata.creator_name,
        creator_url=metadata.creator_url,
        memo=memo,
        tag_objects=[],
    )
    try:
        async with db.begin_nested():
            db.add(content)
            await db.flush()
    except IntegrityError as e:
        if CONTENT_UNIQUE_CONSTRAINT in str(e.orig):
            raise DuplicateContentError(url) from e
        raise

    if tag_names:
        content.tag_objects.extend(await get_or_create_tags(db, tag_names))
        await db.flush()
    return content


async def get_content(
    db: AsyncSession,
    user_id: UUID,
    content_id: UUID,
) -> Content | None:
    """Get a content by ID, scoped to user. Returns None if not found or wrong user."""
    return await db.scalar(_content_query(user_id).where(Content.id == content_id))


async def list_contents(
    db: AsyncSession,
    user_id: UUID,
    platform: str | None = None,
    tags: list[str] | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
    sort_by: Literal["saved_at", "created_at", "title"] = "saved_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> tuple[list[Content], int]:
    """
    List a user's contents with filters and pagination.

    Args:
        db: Database session.
        user_id: User ID to scope contents.
        platform: Only contents from this platform.
        tags: Only contents carrying any of these tags.
        search: Case-insensitive substring match on title or description.
        page: 1-based page number.
        limit: Page size.
        sort_by: Field to sort by.
        sort_order: Sort direction.

    Returns:
        Tuple of (contents on the page, total matching count).
    """
    query = _content_query(user_id)

    if platform:
        platform_record = await platform_cache.get(db, platform)
        query = query.where(Content.platform_id == platform_record.id)

    if search and search.strip():
        pattern = f"%{escape_ilike(search.strip())}%"
        query = query.where(or_(Content.title.ilike(pattern), Content.description.ilike(pattern)))

    if tags:
        query = apply_tag_filter(query, normalize_tag_names(tags), "any")

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0

    query = apply_content_sorting(query, sort_by, sort_order)
    query = query.offset((max(page, 1) - 1) * limit).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def update_content(
    db: AsyncSession,
    user_id: UUID,
    content_id: UUID,
    title: str | None = None,
    description: str | None = None,
    memo: str | None = None,
    tags: list[str] | None = None,
    fields_set: set[str] | None = None,
) -> Content:
    """
    Update a content's editable fields.

    Only fields named in `fields_set` are written (so None can clear a field);
    when `fields_set` is omitted, every non-None argument is written. Passing
    `tags` replaces the whole tag set.

    Raises:
        ContentNotFoundError: If not found or wrong user.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    content = await get_content(db, user_id, content_id)
    if content is None:
        raise ContentNotFoundError(content_id)

    values = {"title": title, "description": description, "memo": memo, "tags": tags}
    if fields_set is None:
        fields_set = {key for key, value in values.items() if value is not None}

    for field in ("title", "description", "memo"):
        if field in fields_set:
            setattr(content, field, values[field])

    if "tags" in fields_set:
        content.tag_objects = await get_or_create_tags(db, tags or [])

    await db.flush()
    await db.refresh(content, attribute_names=["updated_at", "tag_objects"])
    return content


async def delete_content(
    db: AsyncSession,
    user_id: UUID,
    content_id: UUID,
) -> None:
    """
    Delete a content (its tag and folder associations go with it).

    Raises:
        ContentNotFoundError: If not found or wrong user.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    content = await get_content(db, user_id, content_id)
    if content is None:
        raise ContentNotFoundError(content_id)
    await db.delete(content)
    await db.flush()


async def get_content_stats(db: AsyncSession, user_id: UUID) -> dict:
    """
    Summary counts for a user's library.

    Returns:
        {"total": int, "by_platform": {name: count}, "by_month": [{"month": "YYYY-MM", "count": int}]}
        with months newest first, limited to the last twelve that have saves.
    """
    total = await db.scalar(
        select(func.count()).select_from(Content).where(Content.user_id == user_id),
    ) or 0

    platform_rows = await db.execute(
        select(PlatformRow.name, func.count(Content.id))
        .join(Content, Content.platform_id == PlatformRow.id)
        .where(Content.user_id == user_id)
        .group_by(PlatformRow.name),
    )

    month = func.to_char(func.date_trunc("month", Content.saved_at), "YYYY-MM").label("month")
    month_rows = await db.execute(
        select(month, func.count(Content.id).label("count"))
        .where(Content.user_id == user_id)
        .group_by(month)
        .order_by(month.desc())
        .limit(12),
    )

    return {
        "total": total,
        "by_platform": {name: count for name, count in platform_rows},
        "by_month": [{"month": row.month, "count": row.count} for row in month_rows],
    }
