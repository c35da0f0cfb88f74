"""Sync run audit trail (telegram_sync_runs)."""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.db.session import AsyncSessionLocal
from app.models.telegram_sync_run import SyncRunStatus, TelegramSyncRun

logger = structlog.get_logger(__name__)


class SyncRunRecorder:
    """Opens and closes one TelegramSyncRun row per invocation."""

    def __init__(self, session_factory: async_sessionmaker = None):
        self.session_factory = session_factory or AsyncSessionLocal

    async def open_run(self, mode: str) -> TelegramSyncRun:
        async with self.session_factory() as session:
            run = TelegramSyncRun(
                started_at=datetime.now(timezone.utc),
                status=SyncRunStatus.RUNNING,
                mode=mode,
            )
            session.add(run)
            await session.commit()
            logger.info("sync_run_opened", run_id=str(run.id), mode=mode)
            return run

    async def close_run(
        self,
        run_id: UUID,
        chats_synced: int,
        messages_synced: int,
        error_message: Optional[str] = None,
        finished_at: Optional[datetime] = None,
    ) -> TelegramSyncRun:
        async with self.session_factory() as session:
            run = await session.get(TelegramSyncRun, run_id)
            run.finished_at = finished_at or datetime.now(timezone.utc)
            run.status = SyncRunStatus.FAILED if error_message else SyncRunStatus.SUCCESS
            run.chats_synced = chats_synced
            run.messages_synced = messages_synced
            run.error_message = error_message
            run.calculate_duration()
            await session.commit()

            logger.info(
                "sync_run_closed",
                run_id=str(run_id),
                status=run.status,
                chats_synced=chats_synced,
                messages_synced=messages_synced,
                duration_ms=run.duration_ms,
            )
            return run

    async def list_runs(self, limit: int = 10) -> List[TelegramSyncRun]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TelegramSyncRun).order_by(TelegramSyncRun.started_at.desc()).limit(limit)
            )
            return list(result.scalars().all())
