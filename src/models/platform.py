"""Platform model - lookup table of content sources (instagram, youtube, ...)."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, UUIDMixin


class Platform(Base, UUIDMixin):
    """Display information for one content source; referenced by every saved content."""

    __tablename__ = "platforms"

    name: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    color_bg: Mapped[str | None] = mapped_column(String(16), nullable=True)
    color_text: Mapped[str | None] = mapped_column(String(16), nullable=True)
