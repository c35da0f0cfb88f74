"""
Telegram Sync Run Model
Audit record for each sync invocation
"""
from datetime import timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.db.base import Base


class SyncRunStatus:
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class TelegramSyncRun(Base):
    __tablename__ = "telegram_sync_runs"

    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)

    status = Column(String(20), default=SyncRunStatus.RUNNING, nullable=False)  # running, success, failed
    mode = Column(String(20), default="incremental", nullable=False)  # incremental, full

    chats_synced = Column(Integer, default=0, nullable=False)
    messages_synced = Column(Integer, default=0, nullable=False)

    # Run-level fatal error only; per-chat errors go to the logs
    error_message = Column(Text, nullable=True)

    def __repr__(self):
        return f"<TelegramSyncRun {self.id} at {self.started_at} ({self.status})>"

    def calculate_duration(self):
        """Calculate duration if completed"""
        if self.finished_at and self.started_at:
            started_at, finished_at = self.started_at, self.finished_at
            # Some backends (SQLite) hand back naive UTC datetimes
            if started_at.tzinfo is None:
                started_at = started_at.replace(tzinfo=timezone.utc)
            if finished_at.tzinfo is None:
                finished_at = finished_at.replace(tzinfo=timezone.utc)
            delta = finished_at - started_at
            self.duration_ms = int(delta.total_seconds() * 1000)
        return self.duration_ms
