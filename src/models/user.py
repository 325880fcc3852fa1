"""User model - owners of saved content, keyed by their chat-platform identity."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from models.content import Content
    from models.folder import Folder
    from models.login_token import LoginToken


class User(Base, UUIDMixin, TimestampMixin):
    """A bookmarking user, created on first contact with the Telegram bot."""

    __tablename__ = "users"

    telegram_id: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
        comment="Telegram user id (stringified) - external identity from the bot",
    )
    telegram_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    contents: Mapped[list["Content"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    folders: Mapped[list["Folder"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    login_tokens: Mapped[list["LoginToken"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
