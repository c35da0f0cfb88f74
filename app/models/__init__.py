"""Database models."""

from app.models.telegram_chat import ChatType, TelegramChat
from app.models.telegram_message import TelegramMessage
from app.models.telegram_sync_run import SyncRunStatus, TelegramSyncRun

# Export all models
__all__ = [
    "ChatType",
    "TelegramChat",
    "TelegramMessage",
    "SyncRunStatus",
    "TelegramSyncRun",
]
