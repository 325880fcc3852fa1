"""Folder models - user-defined, ordered collections of saved content."""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from models.content import Content
    from models.user import User

DEFAULT_FOLDER_COLOR = "#6B7280"


class Folder(Base, UUIDMixin, TimestampMixin):
    """A named collection owned by one user."""

    __tablename__ = "folders"
    __table_args__ = (
        # Partial unique index: at most one default folder per user
        Index(
            "uq_folders_user_default",
            "user_id",
            unique=True,
            postgresql_where=text("is_default"),
        ),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DEFAULT_FOLDER_COLOR,
    )
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped["User"] = relationship(back_populates="folders")
    entries: Mapped[list["FolderContent"]] = relationship(
        back_populates="folder",
        cascade="all, delete-orphan",
    )


class FolderContent(Base):
    """Membership of a content in a folder, with its position and when it was added."""

    __tablename__ = "folder_contents"
    __table_args__ = (
        UniqueConstraint("folder_id", "content_id", name="uq_folder_contents_folder_content"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    folder_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("folders.id", ondelete="CASCADE"),
        index=True,
    )
    content_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("contents.id", ondelete="CASCADE"),
        index=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    )

    folder: Mapped["Folder"] = relationship(back_populates="entries")
    content: Mapped["Content"] = relationship()
