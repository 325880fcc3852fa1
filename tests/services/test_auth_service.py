"""Tests for login tokens and sessions."""
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.login_token import LoginToken, TokenKind
from models.user import User
from services.auth_service import (
    create_login_token,
    create_session,
    destroy_session,
    generate_token,
    get_session_user,
    hash_token,
    verify_login_token,
)


@pytest.fixture(autouse=True)
def auth_settings() -> Generator[Settings]:
    """Token lifetimes without reading the environment."""
    settings = Settings(
        database_url='postgresql+asyncpg://u:p@localhost/db',
        login_token_ttl_minutes=10,
        session_ttl_days=7,
    )
    with patch('services.auth_service.get_settings', return_value=settings):
        yield settings


def test__generate_token__random_hex() -> None:
    """Tokens are 64 hex chars and unique."""
    first, second = generate_token(), generate_token()
    assert len(first) == 64
    int(first, 16)
    assert first != second


def test__hash_token__sha256() -> None:
    """Hashes are deterministic hex digests."""
    assert hash_token('abc') == 'ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad'


async def test__create_login_token__stores_hash_only(
    db_session: AsyncSession, test_user: User,
) -> None:
    """Only the hash is persisted, with the configured lifetime."""
    token = await create_login_token(db_session, test_user.id)

    row = await db_session.scalar(select(LoginToken).where(LoginToken.user_id == test_user.id))
    assert row.token_hash == hash_token(token)
    assert row.token_hash != token
    assert row.kind == TokenKind.LOGIN
    remaining = row.expires_at - datetime.now(UTC)
    assert timedelta(minutes=9) < remaining <= timedelta(minutes=10)


async def test__verify_login_token__single_use(
    db_session: AsyncSession, test_user: User,
) -> None:
    """A login token works once."""
    token = await create_login_token(db_session, test_user.id)

    user = await verify_login_token(db_session, token)

    assert user.id == test_user.id
    assert await verify_login_token(db_session, token) is None


async def test__verify_login_token__expired(db_session: AsyncSession, test_user: User) -> None:
    """Expired tokens are rejected."""
    token = await create_login_token(db_session, test_user.id)
    row = await db_session.scalar(select(LoginToken).where(LoginToken.user_id == test_user.id))
    row.expires_at = datetime.now(UTC) - timedelta(seconds=1)
    await db_session.flush()

    assert await verify_login_token(db_session, token) is None


async def test__verify_login_token__redeemed_elsewhere_first(
    db_session: AsyncSession, test_user: User,
) -> None:
    """A token redeemed by another connection after it was loaded here is not accepted twice."""
    token = await create_login_token(db_session, test_user.id)
    # Loaded into this session before the concurrent redemption
    await db_session.scalar(select(LoginToken).where(LoginToken.token_hash == hash_token(token)))
    await db_session.execute(
        text("UPDATE login_tokens SET used_at = now() WHERE token_hash = :token_hash"),
        {'token_hash': hash_token(token)},
    )

    assert await verify_login_token(db_session, token) is None


async def test__verify_login_token__unknown(db_session: AsyncSession) -> None:
    """Unknown tokens are rejected."""
    assert await verify_login_token(db_session, 'nope') is None


async def test__verify_login_token__session_token_not_accepted(
    db_session: AsyncSession, test_user: User,
) -> None:
    """A session token cannot be redeemed as a login token."""
    session_token, _ = await create_session(db_session, test_user.id)
    assert await verify_login_token(db_session, session_token) is None


async def test__session_lifecycle(db_session: AsyncSession, test_user: User) -> None:
    """A session resolves to its user until destroyed."""
    token, expires_at = await create_session(db_session, test_user.id)

    assert expires_at > datetime.now(UTC) + timedelta(days=6)
    assert (await get_session_user(db_session, token)).id == test_user.id

    assert await destroy_session(db_session, token) is True
    assert await get_session_user(db_session, token) is None
    assert await destroy_session(db_session, token) is False


async def test__get_session_user__expired(db_session: AsyncSession, test_user: User) -> None:
    """Expired sessions resolve to nobody."""
    token, _ = await create_session(db_session, test_user.id)
    row = await db_session.scalar(
        select(LoginToken).where(LoginToken.token_hash == hash_token(token)),
    )
    row.expires_at = datetime.now(UTC) - timedelta(minutes=1)
    await db_session.flush()

    assert await get_session_user(db_session, token) is None


async def test__get_session_user__login_token_not_a_session(
    db_session: AsyncSession, test_user: User,
) -> None:
    """Login tokens do not authenticate API requests."""
    token = await create_login_token(db_session, test_user.id)
    assert await get_session_user(db_session, token) is None
