"""Shared test fixtures for the Telegram sync service.

Settings are read at import time, so the environment is pinned before any
``app`` module is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["TELEGRAM_API_ID"] = ""
os.environ["TELEGRAM_API_HASH"] = ""
os.environ["TELEGRAM_SESSION"] = ""
os.environ["S3_BUCKET_NAME"] = ""
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SENTRY_DSN"] = ""
os.environ["LOG_FORMAT"] = "console"

from datetime import datetime, timedelta, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from app.db.session import build_engine, build_session_factory, init_db  # noqa: E402
from app.models.telegram_chat import ChatType  # noqa: E402
from app.services.sync_run_recorder import SyncRunRecorder  # noqa: E402
from app.services.telegram_source_client import Conversation  # noqa: E402
from app.services.telegram_store import TelegramStore  # noqa: E402

BASE_DATE = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_message(message_id, text="hello", media=None, sender_id=None, **extra):
    """Telethon-like message with only the attributes the normalizer reads."""
    return SimpleNamespace(
        id=message_id,
        message=text,
        media=media,
        sender_id=sender_id,
        date=BASE_DATE + timedelta(minutes=message_id),
        reply_to=extra.pop("reply_to", None),
        fwd_from=extra.pop("fwd_from", None),
        entities=extra.pop("entities", None),
        reply_markup=extra.pop("reply_markup", None),
        **extra,
    )


def make_conversation(chat_id="-1001", title="Jobs Board", kind=ChatType.SUPERGROUP, **extra):
    return Conversation(chat_id=chat_id, title=title, kind=kind, **extra)


class FakeSource:
    """
    In-memory stand-in for TelegramSourceClient.

    ``messages`` maps chat_id to the list returned for that chat, to an
    exception instance raised when the chat is fetched, or to a callable
    taking the FetchWindow and returning the page.
    """

    def __init__(self, conversations=None, messages=None, senders=None, media=None, connect_error=None):
        self.conversations = conversations or []
        self.messages = messages or {}
        self.senders = senders or {}
        self.media = media or {}
        self.connect_error = connect_error
        self.windows = {}
        self.requests = []
        self.entered = 0
        self.exited = 0

    async def __aenter__(self):
        self.entered += 1
        if self.connect_error is not None:
            raise self.connect_error
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1

    async def list_conversations(self, limit):
        return self.conversations[:limit]

    async def list_messages(self, conversation, window):
        self.windows[conversation.chat_id] = window
        self.requests.append((conversation.chat_id, window))
        result = self.messages.get(conversation.chat_id, [])
        if isinstance(result, Exception):
            raise result
        if callable(result):
            result = result(window)
        return list(result)[: window.limit]

    async def resolve_sender(self, message):
        sender = self.senders.get(message.sender_id)
        if isinstance(sender, Exception):
            raise sender
        return sender

    async def download_media(self, message):
        return self.media.get(message.id)


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> TelegramStore:
    return TelegramStore(session_factory)


@pytest.fixture
def recorder(session_factory) -> SyncRunRecorder:
    return SyncRunRecorder(session_factory)


@pytest.fixture
def unconfigured_media() -> MagicMock:
    """Media storage that never uploads."""
    media = MagicMock()
    media.configured.return_value = False
    return media
