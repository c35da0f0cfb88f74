"""
Telegram Source Client

Thin wrapper around a Telethon user session (StringSession) exposing only
what the sync engine needs:

- list_conversations: dialogs visible to the account, normalized to Conversation
- list_messages: one windowed message-list request
- resolve_sender: sender entity of a message
- download_media: raw bytes of an attachment

The connection is scoped with ``async with`` so it is closed exactly once
on every exit path.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

import structlog
from telethon import TelegramClient
from telethon.errors import AuthKeyError, RPCError
from telethon.sessions import StringSession
from telethon.tl.types import Channel, Chat, User

from app.config import settings
from app.core.exceptions import SourceConnectionError, SyncConfigurationError
from app.models.telegram_chat import ChatType
from app.services.sync_window import FetchWindow

logger = structlog.get_logger(__name__)


@dataclass
class Conversation:
    """A dialog as seen by the engine, independent of Telethon entity classes."""

    chat_id: str
    title: str
    kind: str
    username: Optional[str] = None
    member_count: Optional[int] = None
    is_megagroup: bool = False
    is_broadcast: bool = False
    entity: Any = None


def classify_entity(entity: Any) -> str:
    """Map a Telethon entity to a ChatType value."""
    if isinstance(entity, Channel):
        if getattr(entity, "broadcast", False):
            return ChatType.CHANNEL
        return ChatType.SUPERGROUP
    if isinstance(entity, Chat):
        return ChatType.GROUP
    if isinstance(entity, User):
        return ChatType.PRIVATE
    # Forbidden/unknown entities: only treat them as chats when flagged so
    if getattr(entity, "broadcast", False):
        return ChatType.CHANNEL
    if getattr(entity, "megagroup", False):
        return ChatType.SUPERGROUP
    return ChatType.PRIVATE


def conversation_from_dialog(dialog: Any) -> Conversation:
    """Build a Conversation from a Telethon Dialog."""
    entity = dialog.entity
    title = dialog.title or getattr(entity, "title", None) or "Untitled"
    return Conversation(
        chat_id=str(dialog.id),
        title=title,
        kind=classify_entity(entity),
        username=getattr(entity, "username", None),
        member_count=getattr(entity, "participants_count", None),
        is_megagroup=bool(getattr(entity, "megagroup", False)),
        is_broadcast=bool(getattr(entity, "broadcast", False)),
        entity=entity,
    )


class TelegramSourceClient:
    """
    Run-scoped Telegram connection.

    Usage:
        async with TelegramSourceClient() as source:
            conversations = await source.list_conversations(limit=100)
    """

    def __init__(
        self,
        api_id: Optional[str] = None,
        api_hash: Optional[str] = None,
        session_string: Optional[str] = None,
        client: Optional[TelegramClient] = None,
    ):
        self.api_id = api_id if api_id is not None else settings.TELEGRAM_API_ID
        self.api_hash = api_hash if api_hash is not None else settings.TELEGRAM_API_HASH
        self.session_string = session_string if session_string is not None else settings.TELEGRAM_SESSION
        self.client = client

    def _build_client(self) -> TelegramClient:
        if not self.api_id or not self.api_hash:
            raise SyncConfigurationError("Missing TELEGRAM_API_ID or TELEGRAM_API_HASH")
        if not self.session_string:
            raise SyncConfigurationError("Missing TELEGRAM_SESSION (generate a StringSession first)")
        try:
            api_id = int(self.api_id)
        except ValueError as e:
            raise SyncConfigurationError(f"TELEGRAM_API_ID must be an integer: {self.api_id!r}") from e

        return TelegramClient(
            StringSession(self.session_string),
            api_id,
            self.api_hash,
            connection_retries=settings.TELEGRAM_CONNECTION_RETRIES,
            # Telethon sleeps through short FloodWaits itself; longer ones raise
            flood_sleep_threshold=settings.FLOOD_WAIT_MAX_SECONDS,
        )

    async def connect(self) -> None:
        if self.client is None:
            self.client = self._build_client()

        try:
            await self.client.connect()
            authorized = await self.client.is_user_authorized()
        except (AuthKeyError, RPCError, OSError, ConnectionError) as e:
            raise SourceConnectionError(f"Telegram connection failed: {e}") from e

        if not authorized:
            raise SourceConnectionError("Telegram session is not authorized")

        logger.info("telegram_client_connected")

    async def disconnect(self) -> None:
        if self.client is None:
            return
        try:
            await self.client.disconnect()
            logger.info("telegram_client_disconnected")
        except Exception as e:
            logger.warning("telegram_disconnect_failed", error=str(e))

    async def __aenter__(self) -> "TelegramSourceClient":
        try:
            await self.connect()
        except BaseException:
            await self.disconnect()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def list_conversations(self, limit: int) -> List[Conversation]:
        dialogs = await self.client.get_dialogs(limit=limit)
        return [conversation_from_dialog(d) for d in dialogs]

    async def list_messages(self, conversation: Conversation, window: FetchWindow) -> List[Any]:
        kwargs = {"limit": window.limit}
        if window.min_id is not None:
            kwargs["min_id"] = window.min_id
        if window.offset_id is not None:
            kwargs["offset_id"] = window.offset_id

        messages = await self.client.get_messages(conversation.entity, **kwargs)
        # get_messages may overshoot the limit on some paths
        return list(messages)[: window.limit]

    async def resolve_sender(self, message: Any) -> Any:
        return await message.get_sender()

    async def download_media(self, message: Any) -> Optional[bytes]:
        return await self.client.download_media(message, file=bytes)
