"""FastAPI dependencies for injection."""
from core.auth import get_current_user
from core.config import get_settings
from db.session import get_async_session
from services.telegram_bot import TelegramClient, get_telegram_client

__all__ = [
    "TelegramClient",
    "get_async_session",
    "get_current_user",
    "get_settings",
    "get_telegram_client",
]
