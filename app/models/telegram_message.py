"""
Telegram Message Model
One normalized message, unique per (chat_id, message_id)
"""
from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, String, Text, UniqueConstraint

from app.db.base import Base


class TelegramMessage(Base):
    __tablename__ = "telegram_messages"
    __table_args__ = (
        UniqueConstraint("chat_id", "message_id", name="uq_telegram_messages_chat_message"),
    )

    chat_id = Column(String(64), nullable=False, index=True)
    message_id = Column(BigInteger, nullable=False, index=True)

    sender_id = Column(String(64), nullable=True)
    sender_name = Column(String(255), nullable=True)
    text = Column(Text, nullable=False, default="")
    date = Column(DateTime(timezone=True), nullable=False, index=True)

    has_media = Column(Boolean, default=False, nullable=False)
    media_type = Column(String(50), nullable=True)  # photo, document, webpage, ...
    media_url = Column(String(1000), nullable=True)  # public URL once uploaded

    reply_to_message_id = Column(BigInteger, nullable=True)
    forward_from = Column(String(255), nullable=True)

    entities = Column(JSON, nullable=True)  # [{type, offset, length, url?}]
    buttons = Column(JSON, nullable=True)  # [{text, url}]

    def __repr__(self):
        return f"<TelegramMessage {self.chat_id}/{self.message_id}>"
