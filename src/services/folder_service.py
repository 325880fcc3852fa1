"""Service layer for folders: user-defined, ordered collections of saved contents."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.content import Content
from models.folder import DEFAULT_FOLDER_COLOR, Folder, FolderContent

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "Inbox"
DEFAULT_FOLDER_DESCRIPTION = "Default folder"
DEFAULT_FOLDER_ICON = "📥"
FOLDER_ICON = "📁"


class FolderNotFoundError(Exception):
    """Raised when a folder does not exist or belongs to another user."""

    def __init__(self, folder_id: UUID) -> None:
        self.folder_id = folder_id
        super().__init__(f"Folder {folder_id} not found")


class DefaultFolderDeleteError(Exception):
    """Raised when trying to delete a user's default folder."""

    def __init__(self) -> None:
        super().__init__("Cannot delete default folder")


@dataclass
class FolderWithStats:
    """A folder with how many contents it holds and when the latest was added."""

    folder: Folder
    content_count: int
    latest_added_at: datetime | None


@dataclass
class FolderEntry:
    """A content as it sits in a folder."""

    content: Content
    added_at: datetime
    sort_order: int


async def _next_folder_sort_order(db: AsyncSession, user_id: UUID) -> int:
    current = await db.scalar(
        select(func.max(Folder.sort_order)).where(Folder.user_id == user_id),
    )
    return (current or 0) + 1


async def _next_entry_sort_order(db: AsyncSession, folder_id: UUID) -> int:
    current = await db.scalar(
        select(func.max(FolderContent.sort_order)).where(FolderContent.folder_id == folder_id),
    )
    return (current or 0) + 1


async def get_folder(db: AsyncSession, user_id: UUID, folder_id: UUID) -> Folder:
    """
    Get a folder by ID, scoped to user.

    Raises:
        FolderNotFoundError: If not found or wrong user.
    """
    folder = await db.scalar(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id),
    )
    if folder is None:
        raise FolderNotFoundError(folder_id)
    return folder


async def get_folder_stats(db: AsyncSession, user_id: UUID, folder_id: UUID) -> FolderWithStats:
    """Get a folder with its content count."""
    folder = await get_folder(db, user_id, folder_id)
    row = (await db.execute(
        select(func.count(FolderContent.id), func.max(FolderContent.added_at))
        .where(FolderContent.folder_id == folder.id),
    )).one()
    return FolderWithStats(folder=folder, content_count=row[0], latest_added_at=row[1])


async def get_user_folders(db: AsyncSession, user_id: UUID) -> list[FolderWithStats]:
    """All of a user's folders in display order, with content counts."""
    result = await db.execute(
        select(
            Folder,
            func.count(FolderContent.id).label("content_count"),
            func.max(FolderContent.added_at).label("latest_added_at"),
        )
        .outerjoin(FolderContent, FolderContent.folder_id == Folder.id)
        .where(Folder.user_id == user_id)
        .group_by(Folder.id)
        .order_by(Folder.sort_order.asc(), Folder.created_at.asc()),
    )
    return [
        FolderWithStats(
            folder=row.Folder,
            content_count=row.content_count,
            latest_added_at=row.latest_added_at,
        )
        for row in result
    ]


async def get_folder_with_contents(
    db: AsyncSession,
    user_id: UUID,
    folder_id: UUID,
    page: int = 1,
    limit: int = 20,
    sort_by: Literal["added_at", "sort_order"] = "added_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> tuple[Folder, list[FolderEntry], int]:
    """
    Get a folder and one page of its contents.

    Returns:
        Tuple of (folder, entries on the page, total entries in the folder).

    Raises:
        FolderNotFoundError: If not found or wrong user.
    """
    folder = await get_folder(db, user_id, folder_id)

    total = await db.scalar(
        select(func.count(FolderContent.id)).where(FolderContent.folder_id == folder.id),
    ) or 0

    column = FolderContent.added_at if sort_by == "added_at" else FolderContent.sort_order
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        select(FolderContent)
        .options(selectinload(FolderContent.content).selectinload(Content.tag_objects))
        .where(FolderContent.folder_id == folder.id)
        .order_by(ordering, FolderContent.id.asc())
        .offset((max(page, 1) - 1) * limit)
        .limit(limit),
    )
    entries = [
        FolderEntry(content=entry.content, added_at=entry.added_at, sort_order=entry.sort_order)
        for entry in result.scalars()
    ]
    return folder, entries, total


async def create_folder(
    db: AsyncSession,
    user_id: UUID,
    name: str,
    description: str | None = None,
    color: str | None = None,
    icon: str | None = None,
) -> Folder:
    """
    Create a folder at the end of the user's folder order.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    folder = Folder(
        user_id=user_id,
        name=name,
        description=description,
        color=color or DEFAULT_FOLDER_COLOR,
        icon=icon or FOLDER_ICON,
        is_default=False,
        sort_order=await _next_folder_sort_order(db, user_id),
    )
    db.add(folder)
    await db.flush()
    await db.refresh(folder)
    return folder


async def update_folder(
    db: AsyncSession,
    user_id: UUID,
    folder_id: UUID,
    updates: dict,
) -> Folder:
    """
    Update a folder's name, description, color, icon or sort order.

    Only keys present in `updates` are written; unknown keys are ignored.

    Raises:
        FolderNotFoundError: If not found or wrong user.
    """
    folder = await get_folder(db, user_id, folder_id)
    for field in ("name", "description", "color", "icon", "sort_order"):
        if field in updates:
            setattr(folder, field, updates[field])
    await db.flush()
    await db.refresh(folder)
    return folder


async def delete_folder(db: AsyncSession, user_id: UUID, folder_id: UUID) -> None:
    """
    Delete a folder. Its contents stay saved; only the memberships go.

    Raises:
        FolderNotFoundError: If not found or wrong user.
        DefaultFolderDeleteError: If it is the user's default folder.
    """
    folder = await get_folder(db, user_id, folder_id)
    if folder.is_default:
        raise DefaultFolderDeleteError()
    await db.delete(folder)
    await db.flush()


async def _owned_content_ids(
    db: AsyncSession,
    user_id: UUID,
    content_ids: list[UUID],
) -> list[UUID]:
    """The subset of content_ids owned by the user, in the given order."""
    result = await db.execute(
        select(Content.id).where(Content.user_id == user_id, Content.id.in_(content_ids)),
    )
    owned = set(result.scalars())
    return [content_id for content_id in dict.fromkeys(content_ids) if content_id in owned]


async def add_contents_to_folder(
    db: AsyncSession,
    user_id: UUID,
    folder_id: UUID,
    content_ids: list[UUID],
) -> int:
    """
    Add contents to a folder, appending them to its order.

    Contents already in the folder and ids the user does not own are skipped.

    Returns:
        Number of contents added.

    Raises:
        FolderNotFoundError: If not found or wrong user.
    """
    folder = await get_folder(db, user_id, folder_id)
    candidates = await _owned_content_ids(db, user_id, content_ids)
    if not candidates:
        return 0

    existing = set((await db.execute(
        select(FolderContent.content_id).where(
            FolderContent.folder_id == folder.id,
            FolderContent.content_id.in_(candidates),
        ),
    )).scalars())
    new_ids = [content_id for content_id in candidates if content_id not in existing]
    if not new_ids:
        return 0

    next_order = await _next_entry_sort_order(db, folder.id)
    for offset, content_id in enumerate(new_ids):
        db.add(FolderContent(
            folder_id=folder.id,
            content_id=content_id,
            sort_order=next_order + offset,
        ))
    await db.flush()
    return len(new_ids)


async def remove_contents_from_folder(
    db: AsyncSession,
    user_id: UUID,
    folder_id: UUID,
    content_ids: list[UUID],
) -> int:
    """
    Remove contents from a folder (the contents themselves are kept).

    Returns:
        Number of memberships removed.

    Raises:
        FolderNotFoundError: If not found or wrong user.
    """
    folder = await get_folder(db, user_id, folder_id)
    if not content_ids:
        return 0
    result = await db.execute(
        delete(FolderContent).where(
            FolderContent.folder_id == folder.id,
            FolderContent.content_id.in_(content_ids),
        ),
    )
    return result.rowcount or 0


async def move_content(
    db: AsyncSession,
    user_id: UUID,
    content_id: UUID,
    from_folder_id: UUID,
    to_folder_id: UUID,
) -> None:
    """
    Move a content from one folder to the end of another.

    A content already in the target folder is just removed from the source.

    Raises:
        FolderNotFoundError: If either folder is not found or wrong user.
    """
    source = await get_folder(db, user_id, from_folder_id)
    target = await get_folder(db, user_id, to_folder_id)
    await db.execute(
        delete(FolderContent).where(
            FolderContent.folder_id == source.id,
            FolderContent.content_id == content_id,
        ),
    )
    await add_contents_to_folder(db, user_id, target.id, [content_id])


async def get_content_folders(
    db: AsyncSession,
    user_id: UUID,
    content_id: UUID,
) -> list[Folder]:
    """Folders of the user that contain the content."""
    result = await db.execute(
        select(Folder)
        .join(FolderContent, FolderContent.folder_id == Folder.id)
        .where(Folder.user_id == user_id, FolderContent.content_id == content_id)
        .order_by(Folder.sort_order.asc()),
    )
    return list(result.scalars().all())


async def get_or_create_default_folder(db: AsyncSession, user_id: UUID) -> Folder:
    """
    Get the user's default folder, creating it on first use.

    The partial unique index on (user_id) WHERE is_default settles concurrent
    creation: the loser of the race reads back the winner's folder.
    """
    query = select(Folder).where(Folder.user_id == user_id, Folder.is_default.is_(True))
    folder = await db.scalar(query)
    if folder is not None:
        return folder

    folder = Folder(
        user_id=user_id,
        name=DEFAULT_FOLDER_NAME,
        description=DEFAULT_FOLDER_DESCRIPTION,
        color=DEFAULT_FOLDER_COLOR,
        icon=DEFAULT_FOLDER_ICON,
        is_default=True,
        sort_order=0,
    )
    try:
        async with db.begin_nested():
            db.add(folder)
            await db.flush()
    except IntegrityError:
        logger.info("Default folder for user %s created concurrently", user_id)
        folder = (await db.execute(query)).scalar_one()
    return folder


async def reorder_folders(db: AsyncSession, user_id: UUID, folder_ids: list[UUID]) -> None:
    """
    Set folder order from a list of ids: the i-th folder gets sort_order i + 1.

    Ids the user does not own are ignored.
    """
    result = await db.execute(
        select(Folder).where(Folder.user_id == user_id, Folder.id.in_(folder_ids)),
    )
    folders = {folder.id: folder for folder in result.scalars()}
    for position, folder_id in enumerate(folder_ids, start=1):
        folder = folders.get(folder_id)
        if folder is not None:
            folder.sort_order = position
    await db.flush()
