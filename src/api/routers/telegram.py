"""Telegram webhook endpoint."""
import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    TelegramClient,
    get_async_session,
    get_settings,
    get_telegram_client,
)
from core.config import Settings
from schemas.common import ApiResponse
from schemas.telegram import TelegramUpdate
from services.telegram_bot import handle_update

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook", response_model=ApiResponse[dict])
async def telegram_webhook(
    update: TelegramUpdate,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
    client: TelegramClient = Depends(get_telegram_client),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[dict]:
    """
    Receive a bot update.

    When TELEGRAM_WEBHOOK_SECRET is set, Telegram must echo it in the
    X-Telegram-Bot-Api-Secret-Token header.
    """
    expected = settings.telegram_webhook_secret
    if expected and not secrets.compare_digest(
        x_telegram_bot_api_secret_token or "", expected,
    ):
        logger.warning("Rejected Telegram webhook with bad secret token")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not await handle_update(db, update, client):
        raise HTTPException(status_code=400, detail="No user")
    return ApiResponse(data={"ok": True})
