"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDMixin
from models.tag import Tag, content_tags  # Must be before content due to import
from models.content import Content
from models.folder import Folder, FolderContent
from models.login_token import LoginToken, TokenKind
from models.platform import Platform
from models.user import User

__all__ = [
    "Base",
    "Content",
    "Folder",
    "FolderContent",
    "LoginToken",
    "Platform",
    "Tag",
    "TimestampMixin",
    "TokenKind",
    "UUIDMixin",
    "User",
    "content_tags",
]
