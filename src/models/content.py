"""Content model for storing saved links."""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDMixin
from models.tag import content_tags

if TYPE_CHECKING:
    from models.platform import Platform
    from models.tag import Tag
    from models.user import User


class Content(Base, UUIDMixin, TimestampMixin):
    """One bookmarked URL for one user, with the metadata captured at save time."""

    __tablename__ = "contents"
    __table_args__ = (
        # The authoritative duplicate guard: one row per (user, canonical URL)
        UniqueConstraint("user_id", "url", name="uq_contents_user_id_url"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    platform_id: Mapped[UUID] = mapped_column(
        ForeignKey("platforms.id"),
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    creator_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
        index=True,
    )

    user: Mapped["User"] = relationship(back_populates="contents")
    platform: Mapped["Platform"] = relationship(lazy="joined")
    tag_objects: Mapped[list["Tag"]] = relationship(
        secondary=content_tags,
        back_populates="contents",
    )

    @property
    def tags(self) -> list[str]:
        """Tag names attached to this content, sorted for stable output."""
        return sorted(tag.name for tag in self.tag_objects)
