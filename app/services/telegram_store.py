"""
Telegram Store - chats, cursors and messages.

Every write runs in its own short transaction so that one failed write
(rolled back) never discards the writes before it.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.base import utcnow
from app.db.session import AsyncSessionLocal
from app.models.telegram_chat import TelegramChat
from app.models.telegram_message import TelegramMessage
from app.services.message_normalizer import MessageRecord
from app.services.sync_window import advance_high_watermark, retract_low_watermark
from app.services.telegram_source_client import Conversation

logger = structlog.get_logger(__name__)

# Columns a later write may fill in but never blank out
ENRICHMENT_COLUMNS = (
    "sender_id",
    "sender_name",
    "media_type",
    "media_url",
    "reply_to_message_id",
    "forward_from",
)


def escape_like(value: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    if session.bind.dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


class TelegramStore:
    """Point lookups, idempotent upserts and ratcheted cursor updates."""

    def __init__(self, session_factory: async_sessionmaker = None):
        self.session_factory = session_factory or AsyncSessionLocal

    # Chats

    async def get_chat(self, chat_id: str) -> Optional[TelegramChat]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TelegramChat).where(TelegramChat.chat_id == chat_id)
            )
            return result.scalar_one_or_none()

    async def ensure_chat(self, conversation: Conversation) -> TelegramChat:
        """
        Insert the chat if absent, otherwise refresh its descriptive fields.

        Cursors are never touched here.
        """
        async with self.session_factory() as session:
            insert = _insert_for(session)
            stmt = insert(TelegramChat).values(
                chat_id=conversation.chat_id,
                title=conversation.title,
                type=conversation.kind,
                username=conversation.username,
                member_count=conversation.member_count,
                is_megagroup=conversation.is_megagroup,
                is_broadcast=conversation.is_broadcast,
                last_message_id=0,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[TelegramChat.chat_id],
                set_={
                    "title": stmt.excluded.title,
                    "username": stmt.excluded.username,
                    "member_count": stmt.excluded.member_count,
                    "updated_at": utcnow(),
                },
            )
            await session.execute(stmt)
            await session.commit()

            result = await session.execute(
                select(TelegramChat).where(TelegramChat.chat_id == conversation.chat_id)
            )
            return result.scalar_one()

    async def update_cursors(
        self,
        chat_id: str,
        high_candidate: Optional[int] = None,
        low_candidate: Optional[int] = None,
        synced_at: Optional[datetime] = None,
    ) -> TelegramChat:
        """
        Ratchet the chat's cursors and stamp last_synced_at.

        ``high_candidate`` can only raise last_message_id and ``low_candidate``
        can only lower oldest_message_id; pass None to leave a cursor alone.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(TelegramChat).where(TelegramChat.chat_id == chat_id)
            )
            chat = result.scalar_one()

            chat.last_message_id = advance_high_watermark(chat.last_message_id, high_candidate)
            chat.oldest_message_id = retract_low_watermark(chat.oldest_message_id, low_candidate)
            chat.last_synced_at = synced_at or datetime.now(timezone.utc)

            await session.commit()
            return chat

    async def list_chats(self, active_only: bool = False) -> List[TelegramChat]:
        async with self.session_factory() as session:
            query = select(TelegramChat).order_by(
                TelegramChat.last_synced_at.desc().nulls_last(), TelegramChat.title
            )
            if active_only:
                query = query.where(TelegramChat.is_active.is_(True))
            result = await session.execute(query)
            return list(result.scalars().all())

    # Messages

    async def upsert_message(self, record: MessageRecord) -> None:
        """
        Insert or overwrite the row for (chat_id, message_id).

        Enrichment columns keep their stored value when the new write has
        None, so a retry can only add information.
        """
        async with self.session_factory() as session:
            insert = _insert_for(session)
            stmt = insert(TelegramMessage).values(**record.to_row())
            table = TelegramMessage.__table__

            set_ = {
                "text": stmt.excluded.text,
                "date": stmt.excluded.date,
                "has_media": stmt.excluded.has_media,
                "entities": stmt.excluded.entities,
                "buttons": stmt.excluded.buttons,
                "updated_at": utcnow(),
            }
            for column in ENRICHMENT_COLUMNS:
                set_[column] = func.coalesce(getattr(stmt.excluded, column), table.c[column])

            stmt = stmt.on_conflict_do_update(
                index_elements=[TelegramMessage.chat_id, TelegramMessage.message_id],
                set_=set_,
            )
            try:
                await session.execute(stmt)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def get_message(self, chat_id: str, message_id: int) -> Optional[TelegramMessage]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TelegramMessage).where(
                    TelegramMessage.chat_id == chat_id,
                    TelegramMessage.message_id == message_id,
                )
            )
            return result.scalar_one_or_none()

    async def list_messages(
        self,
        chat_id: str,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
    ) -> Tuple[List[TelegramMessage], int]:
        """Newest-first page of a chat's messages plus the total match count."""
        async with self.session_factory() as session:
            conditions = [TelegramMessage.chat_id == chat_id]
            if search:
                pattern = f"%{escape_like(search)}%"
                conditions.append(
                    or_(
                        TelegramMessage.text.ilike(pattern, escape="\\"),
                        TelegramMessage.sender_name.ilike(pattern, escape="\\"),
                    )
                )

            total = await session.scalar(
                select(func.count()).select_from(TelegramMessage).where(*conditions)
            )
            result = await session.execute(
                select(TelegramMessage)
                .where(*conditions)
                .order_by(TelegramMessage.date.desc(), TelegramMessage.message_id.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all()), total or 0

    async def count_messages(self) -> int:
        async with self.session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(TelegramMessage))
            return total or 0
