"""Tests for login link redemption, sessions, and request authentication."""
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from services.auth_service import create_login_token


async def test_login_and_use_session(
    client: AsyncClient, db_session: AsyncSession, test_user: User,
) -> None:
    """A login token is exchanged for a session token that authenticates requests."""
    token = await create_login_token(db_session, test_user.id)
    del client.headers['X-User-Id']

    response = await client.get('/auth/login', params={'token': token})

    assert response.status_code == 200
    data = response.json()['data']
    assert data['user']['id'] == str(test_user.id)
    assert data['user']['telegram_username'] == 'alice'
    session_token = data['session_token']

    listing = await client.get('/contents', headers={'Authorization': f'Bearer {session_token}'})
    assert listing.status_code == 200


async def test_login_token_is_single_use(
    client: AsyncClient, db_session: AsyncSession, test_user: User,
) -> None:
    """The same login link cannot be used twice."""
    token = await create_login_token(db_session, test_user.id)

    first = await client.get('/auth/login', params={'token': token})
    second = await client.get('/auth/login', params={'token': token})

    assert first.status_code == 200
    assert second.status_code == 401
    assert second.json() == {'success': False, 'error': 'Invalid or expired login token'}


async def test_login_invalid_token(client: AsyncClient) -> None:
    """Unknown tokens are rejected."""
    response = await client.get('/auth/login', params={'token': 'garbage'})
    assert response.status_code == 401


async def test_login_missing_token(client: AsyncClient) -> None:
    """The token parameter is required."""
    response = await client.get('/auth/login')
    assert response.status_code == 422


async def test_logout(
    client: AsyncClient, db_session: AsyncSession, test_user: User,
) -> None:
    """After logout the session token no longer authenticates."""
    token = await create_login_token(db_session, test_user.id)
    session_token = (await client.get('/auth/login', params={'token': token})).json()['data'][
        'session_token'
    ]
    del client.headers['X-User-Id']
    auth = {'Authorization': f'Bearer {session_token}'}

    logout = await client.post('/auth/logout', headers=auth)
    after = await client.get('/contents', headers=auth)

    assert logout.status_code == 200
    assert after.status_code == 401


async def test_logout_without_credentials(client: AsyncClient) -> None:
    """Logout needs a bearer token."""
    response = await client.post('/auth/logout')
    assert response.status_code == 401


async def test_invalid_bearer_token(client: AsyncClient) -> None:
    """A bad bearer token is rejected even when X-User-Id is present."""
    response = await client.get('/contents', headers={'Authorization': 'Bearer nope'})

    assert response.status_code == 401
    assert response.headers['WWW-Authenticate'] == 'Bearer'


async def test_unknown_user_header(client: AsyncClient) -> None:
    """A well-formed X-User-Id for no user is rejected."""
    response = await client.get(
        '/contents', headers={'X-User-Id': '00000000-0000-0000-0000-000000000000'},
    )
    assert response.status_code == 401
