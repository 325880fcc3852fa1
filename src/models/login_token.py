"""Login token model for bot-issued login links and dashboard sessions."""
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from models.user import User


class TokenKind(StrEnum):
    """What a stored token grants."""

    LOGIN = "login"  # single-use, short-lived link sent by the bot
    SESSION = "session"  # longer-lived dashboard session


class LoginToken(Base, UUIDMixin, TimestampMixin):
    """
    Hashed login or session token.

    Tokens are stored hashed - the plaintext only exists in the bot message
    or the client's session.
    """

    __tablename__ = "login_tokens"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        comment="SHA-256 hash of the token",
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=TokenKind.LOGIN)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship(back_populates="login_tokens")
