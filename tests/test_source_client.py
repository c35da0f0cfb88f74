"""Unit tests for the Telethon source client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from telethon.tl.types import Channel, Chat, User

from app.core.exceptions import SourceConnectionError, SyncConfigurationError
from app.models.telegram_chat import ChatType
from app.services.sync_window import FetchWindow
from app.services.telegram_source_client import (
    TelegramSourceClient,
    classify_entity,
    conversation_from_dialog,
)

from conftest import make_conversation


def make_entity(cls, **attrs):
    # TL constructors take many positional fields; only the flags matter here
    entity = cls.__new__(cls)
    for name, value in attrs.items():
        setattr(entity, name, value)
    return entity


class TestClassifyEntity:
    def test_broadcast_channel(self) -> None:
        assert classify_entity(make_entity(Channel, broadcast=True, megagroup=False)) == ChatType.CHANNEL

    def test_megagroup_is_supergroup(self) -> None:
        assert classify_entity(make_entity(Channel, broadcast=False, megagroup=True)) == ChatType.SUPERGROUP

    def test_basic_group(self) -> None:
        assert classify_entity(make_entity(Chat)) == ChatType.GROUP

    def test_user_is_private(self) -> None:
        assert classify_entity(make_entity(User)) == ChatType.PRIVATE


def test_conversation_from_dialog_keeps_marked_id() -> None:
    entity = make_entity(
        Channel, broadcast=False, megagroup=True, username="pyjobs", participants_count=1200, title="Py Jobs"
    )
    dialog = SimpleNamespace(id=-1001234567890, title="Py Jobs", entity=entity)

    conversation = conversation_from_dialog(dialog)

    assert conversation.chat_id == "-1001234567890"
    assert conversation.kind == ChatType.SUPERGROUP
    assert conversation.username == "pyjobs"
    assert conversation.member_count == 1200
    assert conversation.is_megagroup
    assert not conversation.is_broadcast


class TestCredentials:
    @pytest.mark.asyncio
    async def test_missing_credentials_fail_before_connecting(self) -> None:
        source = TelegramSourceClient(api_id="", api_hash="", session_string="")
        with pytest.raises(SyncConfigurationError):
            async with source:
                pass

    @pytest.mark.asyncio
    async def test_non_numeric_api_id(self) -> None:
        source = TelegramSourceClient(api_id="abc", api_hash="hash", session_string="session")
        with pytest.raises(SyncConfigurationError):
            await source.connect()

    @pytest.mark.asyncio
    async def test_unauthorized_session_is_disconnected(self) -> None:
        client = MagicMock()
        client.connect = AsyncMock()
        client.disconnect = AsyncMock()
        client.is_user_authorized = AsyncMock(return_value=False)
        source = TelegramSourceClient(api_id="1", api_hash="h", session_string="s", client=client)

        with pytest.raises(SourceConnectionError):
            async with source:
                pass

        client.disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_connection_closed_once_after_use() -> None:
    client = MagicMock()
    client.connect = AsyncMock()
    client.disconnect = AsyncMock()
    client.is_user_authorized = AsyncMock(return_value=True)
    client.get_messages = AsyncMock(return_value=[1, 2, 3])
    conversation = make_conversation(entity="entity")

    async with TelegramSourceClient(api_id="1", api_hash="h", session_string="s", client=client) as source:
        messages = await source.list_messages(conversation, FetchWindow(limit=2, min_id=9))

    assert messages == [1, 2]
    client.get_messages.assert_awaited_once_with("entity", limit=2, min_id=9)
    client.disconnect.assert_awaited_once()
