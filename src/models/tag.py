"""Tag model and content/tag junction table."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Table, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, UUIDMixin

if TYPE_CHECKING:
    from models.content import Content


# Junction table for many-to-many relationship between contents and tags
content_tags = Table(
    "content_tags",
    Base.metadata,
    Column(
        "content_id",
        PG_UUID(as_uuid=True),
        ForeignKey("contents.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        PG_UUID(as_uuid=True),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Index for lookups by tag (composite PK already indexes content_id first)
    Index("ix_content_tags_tag_id", "tag_id"),
)


class Tag(Base, UUIDMixin):
    """
    Tag model - shared across all users.

    Names are stored lowercased and trimmed, so the unique constraint on name
    makes tags case-insensitively unique.
    """

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    )

    contents: Mapped[list["Content"]] = relationship(
        secondary=content_tags,
        back_populates="tag_objects",
    )
