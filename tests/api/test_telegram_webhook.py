"""Tests for the Telegram webhook endpoint."""
from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from core.config import Settings
from services.telegram_bot import MESSAGES


class RecordingClient:
    """Stands in for the Bot API client."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []

    async def send_message(self, chat_id: int, text: str) -> bool:
        self.sent.append((chat_id, text))
        return True


@pytest.fixture
async def bot_client(client: AsyncClient) -> AsyncGenerator[RecordingClient]:
    """Replace the outgoing Telegram client for the duration of a test."""
    from api.main import app
    from services.telegram_bot import get_telegram_client

    recorder = RecordingClient()
    app.dependency_overrides[get_telegram_client] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_telegram_client, None)


@pytest.fixture
def webhook_secret(database_url: str) -> Generator[str]:
    """Require a webhook secret."""
    from api.main import app
    from core.config import get_settings

    settings = Settings(database_url=database_url, telegram_webhook_secret='s3cret')
    app.dependency_overrides[get_settings] = lambda: settings
    yield 's3cret'
    app.dependency_overrides.pop(get_settings, None)


def _update(text: str, with_sender: bool = True) -> dict:
    message: dict = {
        'message_id': 7,
        'chat': {'id': 99, 'type': 'private'},
        'date': 1700000000,
        'text': text,
    }
    if with_sender:
        message['from'] = {'id': 4242, 'is_bot': False, 'first_name': 'Fay', 'username': 'fay'}
    return {'update_id': 1, 'message': message}


async def test_webhook_start_command(client: AsyncClient, bot_client: RecordingClient) -> None:
    """/start replies with the welcome message."""
    response = await client.post('/telegram/webhook', json=_update('/start'))

    assert response.status_code == 200
    assert response.json() == {'success': True, 'data': {'ok': True}}
    assert bot_client.sent == [(99, MESSAGES['welcome'])]


async def test_webhook_saves_link(client: AsyncClient, bot_client: RecordingClient) -> None:
    """A link is saved and answered."""
    reply_result = AsyncMock()
    with (
        patch('services.telegram_bot.save_from_telegram', reply_result),
        patch('services.telegram_bot.format_telegram_response', return_value='✅ Saved!'),
    ):
        response = await client.post('/telegram/webhook', json=_update('https://example.com/x'))

    assert response.status_code == 200
    reply_result.assert_awaited_once()
    assert bot_client.sent == [(99, MESSAGES['saving']), (99, '✅ Saved!')]


async def test_webhook_without_sender(client: AsyncClient, bot_client: RecordingClient) -> None:
    """Messages without a sender are a 400."""
    response = await client.post(
        '/telegram/webhook', json=_update('https://example.com', with_sender=False),
    )

    assert response.status_code == 400
    assert response.json() == {'success': False, 'error': 'No user'}
    assert bot_client.sent == []


async def test_webhook_ignores_non_message_updates(
    client: AsyncClient, bot_client: RecordingClient,
) -> None:
    """Updates without a message are acknowledged."""
    response = await client.post('/telegram/webhook', json={'update_id': 5})

    assert response.status_code == 200
    assert bot_client.sent == []


async def test_webhook_secret_required(
    client: AsyncClient, bot_client: RecordingClient, webhook_secret: str,
) -> None:
    """With a secret configured, the header must match."""
    missing = await client.post('/telegram/webhook', json=_update('/start'))
    wrong = await client.post(
        '/telegram/webhook',
        json=_update('/start'),
        headers={'X-Telegram-Bot-Api-Secret-Token': 'nope'},
    )
    right = await client.post(
        '/telegram/webhook',
        json=_update('/start'),
        headers={'X-Telegram-Bot-Api-Secret-Token': webhook_secret},
    )

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert right.status_code == 200
    assert len(bot_client.sent) == 1


async def test_webhook_invalid_payload(client: AsyncClient, bot_client: RecordingClient) -> None:  # noqa: ARG001
    """Malformed updates fail validation."""
    response = await client.post('/telegram/webhook', json={'message': {}})
    assert response.status_code == 422
