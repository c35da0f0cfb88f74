"""
Telegram Sync API Router

Endpoints (all require ``Authorization: Bearer <CRON_SECRET>``):
- GET|POST /api/cron/telegram-sync - Run one sync (``?full=true`` for backfill)
- GET /api/telegram/chats - Synced chats with their cursors
- GET /api/telegram/chats/{chat_id}/messages - Stored messages of a chat
- GET /api/telegram/sync-runs - Recent sync runs
- GET /api/telegram/stats - Totals and the latest run
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
import structlog

from app.core.security import require_cron_secret
from app.schemas.telegram_sync import (
    ChatListResponse,
    ChatResponse,
    MessageListResponse,
    MessageResponse,
    SyncRunResponse,
    SyncStatsResponse,
    SyncTriggerResponse,
)
from app.services.sync_run_recorder import SyncRunRecorder
from app.services.sync_window import SyncMode
from app.services.telegram_store import TelegramStore
from app.services.telegram_sync_service import TelegramSyncService, get_sync_service

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_cron_secret)])


def get_store() -> TelegramStore:
    return TelegramStore()


def get_recorder() -> SyncRunRecorder:
    return SyncRunRecorder()


# Trigger

@router.api_route(
    "/api/cron/telegram-sync",
    methods=["GET", "POST"],
    response_model=SyncTriggerResponse,
    tags=["Telegram Sync"],
)
async def trigger_sync(
    full: bool = Query(False, description="Walk backward through history instead of catching up"),
    service: TelegramSyncService = Depends(get_sync_service),
):
    """
    Run one sync over all target chats.

    Always answers 200 with the run summary, including failed runs; only a
    failure to even record the run is a 500.
    """
    mode = SyncMode.FULL if full else SyncMode.INCREMENTAL
    logger.info("sync_triggered", mode=mode.value)

    try:
        summary = await service.run(mode)
    except Exception as e:
        logger.error("sync_run_not_recorded", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create sync run",
        )

    return SyncTriggerResponse(
        success=summary.success,
        chats_synced=summary.chats_synced,
        messages_synced=summary.messages_synced,
        duration_ms=summary.duration_ms,
        error=summary.error,
    )


# Inspection

@router.get("/api/telegram/chats", response_model=ChatListResponse, tags=["Telegram Data"])
async def list_chats(
    active_only: bool = Query(False, description="Only show active chats"),
    store: TelegramStore = Depends(get_store),
):
    chats = await store.list_chats(active_only=active_only)
    return ChatListResponse(
        total=len(chats),
        chats=[ChatResponse.model_validate(chat) for chat in chats],
    )


@router.get(
    "/api/telegram/chats/{chat_id}/messages",
    response_model=MessageListResponse,
    tags=["Telegram Data"],
)
async def list_chat_messages(
    chat_id: str = Path(..., description="Telegram chat ID"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    q: str = Query(None, description="Case-insensitive text search"),
    store: TelegramStore = Depends(get_store),
):
    chat = await store.get_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Chat {chat_id} not found")

    messages, total = await store.list_messages(chat_id, limit=limit, offset=offset, search=q)
    return MessageListResponse(
        total=total,
        limit=limit,
        offset=offset,
        messages=[MessageResponse.model_validate(message) for message in messages],
    )


@router.get("/api/telegram/sync-runs", response_model=list[SyncRunResponse], tags=["Telegram Data"])
async def list_sync_runs(
    limit: int = Query(10, ge=1, le=100),
    recorder: SyncRunRecorder = Depends(get_recorder),
):
    runs = await recorder.list_runs(limit=limit)
    return [SyncRunResponse.model_validate(run) for run in runs]


@router.get("/api/telegram/stats", response_model=SyncStatsResponse, tags=["Telegram Data"])
async def get_stats(
    store: TelegramStore = Depends(get_store),
    recorder: SyncRunRecorder = Depends(get_recorder),
):
    chats = await store.list_chats()
    total_messages = await store.count_messages()
    runs = await recorder.list_runs(limit=1)
    return SyncStatsResponse(
        total_chats=len(chats),
        total_messages=total_messages,
        last_sync=SyncRunResponse.model_validate(runs[0]) if runs else None,
    )
