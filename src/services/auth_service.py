"""Service layer for bot-issued login links and dashboard sessions."""
import hashlib
import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.login_token import LoginToken, TokenKind
from models.user import User

logger = logging.getLogger(__name__)


def generate_token() -> str:
    """Generate a random 256-bit token as 64 hex characters."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Hash a token for comparison against stored hashes."""
    return hashlib.sha256(token.encode()).hexdigest()


async def _issue(
    db: AsyncSession,
    user_id: UUID,
    kind: TokenKind,
    ttl: timedelta,
) -> tuple[LoginToken, str]:
    plaintext = generate_token()
    token = LoginToken(
        user_id=user_id,
        token_hash=hash_token(plaintext),
        kind=kind,
        expires_at=datetime.now(UTC) + ttl,
    )
    db.add(token)
    await db.flush()
    return token, plaintext


async def create_login_token(db: AsyncSession, user_id: UUID) -> str:
    """
    Issue a single-use login token for a user (sent as a link by the bot).

    Returns:
        The plaintext token. Only its hash is stored.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    _, plaintext = await _issue(
        db,
        user_id,
        TokenKind.LOGIN,
        timedelta(minutes=get_settings().login_token_ttl_minutes),
    )
    return plaintext


async def verify_login_token(db: AsyncSession, token: str) -> User | None:
    """
    Redeem a login token.

    The check and the marking happen in one conditional UPDATE, so of two
    concurrent redemptions only one gets the user.

    Returns:
        The token's user, or None if the token is unknown, expired, or used.
    """
    now = datetime.now(UTC)
    user_id = await db.scalar(
        update(LoginToken)
        .where(
            LoginToken.token_hash == hash_token(token),
            LoginToken.kind == TokenKind.LOGIN,
            LoginToken.used_at.is_(None),
            LoginToken.expires_at > now,
        )
        .values(used_at=now)
        .returning(LoginToken.user_id),
    )
    if user_id is None:
        logger.info("Rejected unknown, used, or expired login token")
        return None
    return await db.get(User, user_id)


async def create_session(db: AsyncSession, user_id: UUID) -> tuple[str, datetime]:
    """
    Start a dashboard session for a user.

    Returns:
        Tuple of (plaintext session token, expiry time).
    """
    session, plaintext = await _issue(
        db,
        user_id,
        TokenKind.SESSION,
        timedelta(days=get_settings().session_ttl_days),
    )
    return plaintext, session.expires_at


async def get_session_user(db: AsyncSession, token: str) -> User | None:
    """Resolve a session token to its user. Returns None if unknown, expired, or ended."""
    session = await db.scalar(
        select(LoginToken).where(
            LoginToken.token_hash == hash_token(token),
            LoginToken.kind == TokenKind.SESSION,
        ),
    )
    if session is None or session.used_at is not None:
        return None
    if session.expires_at <= datetime.now(UTC):
        return None
    return await db.get(User, session.user_id)


async def destroy_session(db: AsyncSession, token: str) -> bool:
    """
    End a session.

    Returns:
        True if an active session was ended, False if there was none.
    """
    ended = await db.scalar(
        update(LoginToken)
        .where(
            LoginToken.token_hash == hash_token(token),
            LoginToken.kind == TokenKind.SESSION,
            LoginToken.used_at.is_(None),
        )
        .values(used_at=datetime.now(UTC))
        .returning(LoginToken.id),
    )
    return ended is not None
