"""Pydantic schemas for the subset of the Telegram Bot API update payload we read."""
from pydantic import BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    """Sender of a message."""

    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None


class TelegramChat(BaseModel):
    """Chat a message was sent in."""

    model_config = ConfigDict(extra="ignore")

    id: int
    type: str = "private"


class TelegramMessageEntity(BaseModel):
    """Formatting entity inside a message; `url` and `text_link` carry links."""

    model_config = ConfigDict(extra="ignore")

    type: str
    offset: int
    length: int
    url: str | None = None


class TelegramMessage(BaseModel):
    """An incoming message."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    from_user: TelegramUser | None = Field(default=None, alias="from")
    chat: TelegramChat
    date: int = 0
    text: str | None = None
    entities: list[TelegramMessageEntity] = Field(default_factory=list)


class TelegramUpdate(BaseModel):
    """A webhook delivery; updates without a message are acknowledged and ignored."""

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: TelegramMessage | None = None
