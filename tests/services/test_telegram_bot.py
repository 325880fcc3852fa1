"""Tests for the Telegram bot update handling."""
import json
from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.login_token import LoginToken
from models.user import User
from schemas.telegram import TelegramMessage, TelegramUpdate
from services.metadata_extractor import build_fallback_metadata
from services.save_flow import SaveContentResult
from services.tag_generator import TagAnalysis
from services.telegram_bot import (
    MESSAGES,
    TelegramClient,
    extract_urls,
    handle_update,
)
from services.url_normalizer import Platform


class RecordingClient:
    """Stands in for TelegramClient and records outgoing messages."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []

    async def send_message(self, chat_id: int, text: str) -> bool:
        self.sent.append((chat_id, text))
        return True


def _update(text: str | None, entities: list[dict] | None = None, sender: dict | None = None) -> TelegramUpdate:  # noqa: E501
    message: dict = {
        'message_id': 1,
        'chat': {'id': 42, 'type': 'private'},
        'date': 1700000000,
    }
    if text is not None:
        message['text'] = text
    if entities is not None:
        message['entities'] = entities
    if sender is not None:
        message['from'] = sender
    return TelegramUpdate.model_validate({'update_id': 100, 'message': message})


SENDER = {'id': 12345, 'is_bot': False, 'first_name': 'Erin', 'username': 'erin'}


@pytest.fixture
def bot_settings() -> Generator[Settings]:
    """Settings used by the bot for login links."""
    settings = Settings(
        database_url='postgresql+asyncpg://u:p@localhost/db',
        app_url='https://moah.example.com/',
        login_token_ttl_minutes=10,
    )
    with (
        patch('services.telegram_bot.get_settings', return_value=settings),
        patch('services.auth_service.get_settings', return_value=settings),
    ):
        yield settings


class TestExtractUrls:
    """Tests for extract_urls."""

    def test__extract_urls__url_entities(self) -> None:
        """url entities are sliced out of the text."""
        text = 'look https://example.com/a and https://youtu.be/b'
        message = TelegramMessage.model_validate({
            'message_id': 1, 'chat': {'id': 1}, 'text': text,
            'entities': [
                {'type': 'url', 'offset': 5, 'length': 21},
                {'type': 'url', 'offset': 31, 'length': 18},
            ],
        })
        assert extract_urls(message) == ['https://example.com/a', 'https://youtu.be/b']

    def test__extract_urls__utf16_offsets(self) -> None:
        """Offsets count UTF-16 code units, so emoji before a link shift it by two."""
        text = '🔥 https://example.com/x'
        message = TelegramMessage.model_validate({
            'message_id': 1, 'chat': {'id': 1}, 'text': text,
            'entities': [{'type': 'url', 'offset': 3, 'length': 21}],
        })
        assert extract_urls(message) == ['https://example.com/x']

    def test__extract_urls__text_link(self) -> None:
        """text_link entities carry the URL themselves."""
        message = TelegramMessage.model_validate({
            'message_id': 1, 'chat': {'id': 1}, 'text': 'this article',
            'entities': [{'type': 'text_link', 'offset': 5, 'length': 7, 'url': 'https://example.com/art'}],
        })
        assert extract_urls(message) == ['https://example.com/art']

    def test__extract_urls__regex_fallback(self) -> None:
        """Without entities the text is scanned."""
        message = TelegramMessage.model_validate({
            'message_id': 1, 'chat': {'id': 1}, 'text': 'a https://one.example b http://two.example/x',
        })
        assert extract_urls(message) == ['https://one.example', 'http://two.example/x']

    def test__extract_urls__none(self) -> None:
        """No text, no links."""
        message = TelegramMessage.model_validate({'message_id': 1, 'chat': {'id': 1}})
        assert extract_urls(message) == []


class TestHandleUpdate:
    """Tests for handle_update."""

    async def test__handle_update__no_message(self, db_session: AsyncSession) -> None:
        """Updates without a message are acknowledged silently."""
        client = RecordingClient()
        update = TelegramUpdate.model_validate({'update_id': 1})

        assert await handle_update(db_session, update, client) is True
        assert client.sent == []

    async def test__handle_update__no_sender(self, db_session: AsyncSession) -> None:
        """A message without a sender cannot be processed."""
        client = RecordingClient()

        assert await handle_update(db_session, _update('https://example.com'), client) is False
        assert client.sent == []

    @pytest.mark.parametrize(('text', 'key'), [
        ('/start', 'welcome'),
        ('/start@moah_bot', 'welcome'),
        ('/help', 'help'),
        ('hello there', 'no_url'),
        ('ftp://example.com/file', 'no_url'),
    ])
    async def test__handle_update__fixed_replies(
        self, db_session: AsyncSession, text: str, key: str,
    ) -> None:
        """Commands and link-less messages get canned replies."""
        client = RecordingClient()

        assert await handle_update(db_session, _update(text, sender=SENDER), client) is True
        assert client.sent == [(42, MESSAGES[key])]

    async def test__handle_update__saves_each_link(self, db_session: AsyncSession) -> None:
        """Each valid link is saved and answered separately after the saving notice."""
        client = RecordingClient()
        save = AsyncMock(return_value=SaveContentResult(success=False, code=None, error='x'))
        text = 'two links: https://example.com/1 https://example.com/2'

        with (
            patch('services.telegram_bot.save_from_telegram', save),
            patch('services.telegram_bot.format_telegram_response', return_value='reply'),
        ):
            await handle_update(db_session, _update(text, sender=SENDER), client)

        assert [call.args[1:] for call in save.await_args_list] == [
            ('https://example.com/1', '12345', 'erin'),
            ('https://example.com/2', '12345', 'erin'),
        ]
        assert client.sent == [(42, MESSAGES['saving']), (42, 'reply'), (42, 'reply')]

    async def test__handle_update__end_to_end_save(self, db_session: AsyncSession) -> None:
        """A link from a new sender creates the user and the content."""
        client = RecordingClient()
        with (
            patch('services.save_flow.extract_metadata', new_callable=AsyncMock) as extract,
            patch('services.save_flow.generate_tags', new_callable=AsyncMock) as tags,
        ):
            metadata = build_fallback_metadata('https://example.com/post', Platform.WEB)
            metadata.title = 'A post'
            extract.return_value = metadata
            tags.return_value = TagAnalysis(
                tags=[], sources=[], strategy='fallback', total_processing_time_ms=0,
            )

            await handle_update(db_session, _update('https://example.com/post', sender=SENDER), client)

        user = await db_session.scalar(select(User).where(User.telegram_id == '12345'))
        assert user is not None
        assert client.sent[0] == (42, MESSAGES['saving'])
        assert client.sent[1][1].startswith('✅ Saved!')
        assert '📌 A post' in client.sent[1][1]

    async def test__handle_update__login(
        self, db_session: AsyncSession, bot_settings: Settings,  # noqa: ARG002
    ) -> None:
        """/login sends a one-time link to the dashboard."""
        client = RecordingClient()

        await handle_update(db_session, _update('/login', sender=SENDER), client)

        assert len(client.sent) == 1
        text = client.sent[0][1]
        assert 'valid for 10 minutes' in text
        assert 'https://moah.example.com/auth/login?token=' in text
        user = await db_session.scalar(select(User).where(User.telegram_id == '12345'))
        token_row = await db_session.scalar(select(LoginToken).where(LoginToken.user_id == user.id))
        assert token_row is not None

    async def test__handle_update__login_database_failure(
        self, db_session: AsyncSession, bot_settings: Settings,  # noqa: ARG002
    ) -> None:
        """A login link that cannot be issued gets the generic error reply."""
        client = RecordingClient()

        with patch(
            'services.telegram_bot.auth_service.create_login_token',
            AsyncMock(side_effect=SQLAlchemyError('connection lost')),
        ):
            handled = await handle_update(db_session, _update('/login', sender=SENDER), client)

        assert handled is True
        assert client.sent == [(42, MESSAGES['error'])]
        # The savepoint rolled back; the session is still usable
        assert await db_session.scalar(select(LoginToken)) is None


class TestTelegramClient:
    """Tests for TelegramClient.send_message."""

    @respx.mock
    async def test__send_message__ok(self) -> None:
        """The Bot API sendMessage method is called with chat id and text."""
        route = respx.post('https://api.telegram.org/botTOKEN/sendMessage').mock(
            return_value=httpx.Response(200, json={'ok': True, 'result': {}}),
        )

        assert await TelegramClient('TOKEN').send_message(42, 'hi') is True
        assert json.loads(route.calls.last.request.content) == {'chat_id': 42, 'text': 'hi'}

    @respx.mock
    async def test__send_message__rejected(self) -> None:
        """ok=false is a failure."""
        respx.post('https://api.telegram.org/botTOKEN/sendMessage').mock(
            return_value=httpx.Response(400, json={'ok': False, 'description': 'chat not found'}),
        )

        assert await TelegramClient('TOKEN').send_message(42, 'hi') is False

    @respx.mock
    async def test__send_message__network_error(self) -> None:
        """Transport failures are swallowed and reported as False."""
        respx.post('https://api.telegram.org/botTOKEN/sendMessage').mock(
            side_effect=httpx.ConnectError('down'),
        )

        assert await TelegramClient('TOKEN').send_message(42, 'hi') is False
