"""Authentication: resolve the calling user from a session token or a trusted header."""
import logging
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session
from models.user import User
from services import auth_service

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    x_user_id: str | None = Header(default=None),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Resolve the user making the request.

    Two sources, in order:
    1. `Authorization: Bearer <session token>` issued by /auth/login
    2. `X-User-Id: <uuid>` set by the session layer in front of the API

    Raises:
        HTTPException 401: No credentials, or they do not resolve to a user.
    """
    if credentials is not None:
        user = await auth_service.get_session_user(db, credentials.credentials)
        if user is None:
            raise _unauthorized()
        return user

    if x_user_id:
        try:
            user_id = UUID(x_user_id)
        except ValueError:
            logger.info("Rejected malformed X-User-Id header")
            raise _unauthorized() from None
        user = await db.get(User, user_id)
        if user is None:
            raise _unauthorized()
        return user

    raise _unauthorized()
