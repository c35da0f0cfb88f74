"""
Telegram Chat Model
Stores the groups/supergroups/channels being synced and their progress cursors
"""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class ChatType:
    GROUP = "group"
    SUPERGROUP = "supergroup"
    CHANNEL = "channel"
    PRIVATE = "private"

    SYNCABLE = (GROUP, SUPERGROUP, CHANNEL)


class TelegramChat(Base):
    __tablename__ = "telegram_chats"

    # Telegram chat ID, kept as an opaque string (may be negative)
    chat_id = Column(String(64), unique=True, nullable=False, index=True)
    title = Column(String(500), nullable=False)
    type = Column(String(20), nullable=False)  # group, supergroup, channel, private
    username = Column(String(255), nullable=True)
    member_count = Column(Integer, nullable=True)
    is_megagroup = Column(Boolean, default=False, nullable=False)
    is_broadcast = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Sync cursors (independent ratchets)
    last_message_id = Column(BigInteger, default=0, nullable=False)  # highest stored id, only grows
    oldest_message_id = Column(BigInteger, nullable=True)  # lowest stored id, only shrinks
    last_synced_at = Column(DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self):
        return f"<TelegramChat {self.chat_id} {self.title!r} (last={self.last_message_id}, oldest={self.oldest_message_id})>"
