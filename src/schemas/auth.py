"""Pydantic schemas for login and session endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Schema for the signed-in user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    telegram_id: str | None
    telegram_username: str | None
    email: str | None


class SessionResponse(BaseModel):
    """A new dashboard session; the token goes in `Authorization: Bearer ...`."""

    session_token: str
    expires_at: datetime
    user: UserResponse
