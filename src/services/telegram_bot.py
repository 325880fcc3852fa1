"""
Telegram bot: turns webhook updates into saves and replies.

Users talk to the bot in a private chat. A message containing links saves each
valid link; /login answers with a one-time dashboard login link.
"""
import logging
import re

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from schemas.telegram import TelegramMessage, TelegramUpdate
from services import auth_service, content_service
from services.save_flow import format_telegram_response, save_from_telegram
from services.url_normalizer import is_valid_url

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"

URL_PATTERN = re.compile(r"https?://[^\s]+")

MESSAGES = {
    "welcome": "👋 Welcome to moah!\n\nSend me a link and I'll save it for you.",
    "help": (
        "📝 How to use moah\n\n"
        "1. Send me a link\n"
        "2. It's saved and tagged automatically\n"
        "3. Find it in the moah dashboard\n\n"
        "/login - get a link to sign in to the dashboard"
    ),
    "no_url": "❌ I couldn't find a link in that message. Please send a valid URL.",
    "saving": "⏳ Saving...",
    "error": "❌ Something went wrong. Please try again.",
    "login": "🔑 Sign in to moah with this link (valid for {minutes} minutes):\n{link}",
}


class TelegramClient:
    """Minimal Bot API client for sending replies."""

    def __init__(
        self,
        token: str,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = 10.0,
    ) -> None:
        self.token = token
        self.api_base = api_base
        self.timeout = timeout

    async def send_message(self, chat_id: int, text: str) -> bool:
        """
        Send a text message to a chat.

        Returns:
            True if Telegram accepted the message. Failures are logged, never raised.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.api_base}/bot{self.token}/sendMessage",
                    json={"chat_id": chat_id, "text": text},
                )
                result = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Failed to send Telegram message to chat %s", chat_id)
            return False
        if not result.get("ok"):
            logger.warning(
                "Telegram rejected message to chat %s: %s", chat_id, result.get("description"),
            )
            return False
        return True


def get_telegram_client() -> TelegramClient:
    """Client configured with the bot token from settings."""
    return TelegramClient(get_settings().telegram_bot_token)


def _entity_text(text: str, offset: int, length: int) -> str:
    # Entity offsets count UTF-16 code units
    encoded = text.encode("utf-16-le")
    return encoded[offset * 2:(offset + length) * 2].decode("utf-16-le", errors="ignore")


def extract_urls(message: TelegramMessage) -> list[str]:
    """
    Links in a message.

    Uses the message's `url` and `text_link` entities; when there are none,
    falls back to scanning the text for http(s) URLs.
    """
    urls = []
    for entity in message.entities:
        if entity.type == "url" and message.text:
            urls.append(_entity_text(message.text, entity.offset, entity.length))
        elif entity.type == "text_link" and entity.url:
            urls.append(entity.url)
    if not urls and message.text:
        urls = URL_PATTERN.findall(message.text)
    return urls


def _command(text: str) -> str | None:
    """'/start@moah_bot arg' -> '/start'."""
    if not text.startswith("/"):
        return None
    return text.split()[0].split("@")[0].lower()


async def _send_login_link(
    db: AsyncSession,
    client: TelegramClient,
    chat_id: int,
    telegram_id: str,
    username: str | None,
) -> None:
    settings = get_settings()
    try:
        async with db.begin_nested():
            user = await content_service.get_or_create_telegram_user(db, telegram_id, username)
            token = await auth_service.create_login_token(db, user.id)
    except SQLAlchemyError:
        logger.exception("Failed to issue a login link for Telegram user %s", telegram_id)
        await client.send_message(chat_id, MESSAGES["error"])
        return
    link = f"{settings.app_url.rstrip('/')}/auth/login?token={token}"
    await client.send_message(
        chat_id,
        MESSAGES["login"].format(minutes=settings.login_token_ttl_minutes, link=link),
    )


async def handle_update(
    db: AsyncSession,
    update: TelegramUpdate,
    client: TelegramClient,
) -> bool:
    """
    Process one webhook update.

    Returns:
        False when the update has a message without a sender (nothing can be
        saved for it), True otherwise.
    """
    message = update.message
    if message is None:
        return True

    chat_id = message.chat.id
    text = (message.text or "").strip()
    if message.from_user is None:
        logger.warning("Telegram update %s has no sender", update.update_id)
        return False
    telegram_id = str(message.from_user.id)
    username = message.from_user.username

    command = _command(text)
    if command == "/start":
        await client.send_message(chat_id, MESSAGES["welcome"])
        return True
    if command == "/help":
        await client.send_message(chat_id, MESSAGES["help"])
        return True
    if command == "/login":
        await _send_login_link(db, client, chat_id, telegram_id, username)
        return True

    valid_urls = [url for url in extract_urls(message) if is_valid_url(url)]
    if not valid_urls:
        await client.send_message(chat_id, MESSAGES["no_url"])
        return True

    await client.send_message(chat_id, MESSAGES["saving"])
    for url in valid_urls:
        result = await save_from_telegram(db, url, telegram_id, username)
        await client.send_message(chat_id, format_telegram_response(result))
    return True
