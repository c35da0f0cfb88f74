"""
Telegram Sync Service - incremental chat message synchronization

One run:
- opens a TelegramSyncRun audit record
- connects to Telegram (connection scoped to the run)
- selects target chats (groups/supergroups/channels matching the title allow-list)
- per chat, sequentially: compute the fetch window from the cursors, fetch,
  normalize + upsert each message, ratchet the cursors
- closes the audit record with aggregated counts

Failures are isolated per level: a run-level error (credentials, connection)
stops the run; a chat-level error is logged and the next chat proceeds; a
message-level error (sender lookup, media, a single write) only degrades or
skips that message.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import sentry_sdk
import structlog

from app.config import settings
from app.services.chat_discovery import select_target_chats
from app.services.media_storage import S3MediaStorage
from app.services.message_normalizer import MessageRecord, normalize_message, sender_display_name
from app.services.sync_run_recorder import SyncRunRecorder
from app.services.sync_window import FetchWindow, SyncMode, compute_fetch_window
from app.services.telegram_source_client import Conversation, TelegramSourceClient
from app.services.telegram_store import TelegramStore

logger = structlog.get_logger(__name__)

# Backward pages fetched in one chat while no message on them is storable
MAX_EMPTY_BACKFILL_PAGES = 5


@dataclass
class ChatSyncResult:
    """Outcome of one chat within a run."""

    chat_id: str
    title: str
    success: bool = False
    messages_fetched: int = 0
    messages_stored: int = 0
    messages_skipped: int = 0
    failed_writes: int = 0
    error: Optional[str] = None


@dataclass
class SyncSummary:
    """Aggregated outcome of a run, as reported to the trigger."""

    run_id: Any
    mode: SyncMode
    success: bool
    chats_synced: int
    messages_synced: int
    duration_ms: int
    error: Optional[str] = None
    results: List[ChatSyncResult] = field(default_factory=list)


class TelegramSyncService:
    """
    Sync engine.

    Collaborators are injected so tests can swap the Telegram connection,
    storage, media pipeline and the inter-chat sleep.
    """

    def __init__(
        self,
        store: Optional[TelegramStore] = None,
        recorder: Optional[SyncRunRecorder] = None,
        media_storage: Optional[S3MediaStorage] = None,
        source_factory: Optional[Callable[[], Any]] = None,
        allowlist: Optional[Sequence[str]] = None,
        max_messages_per_chat: Optional[int] = None,
        dialog_limit: Optional[int] = None,
        inter_chat_delay_ms: Optional[int] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.store = store or TelegramStore()
        self.recorder = recorder or SyncRunRecorder()
        self.media_storage = media_storage or S3MediaStorage()
        self.source_factory = source_factory or TelegramSourceClient
        self.allowlist = list(allowlist if allowlist is not None else settings.CHAT_TITLE_ALLOWLIST)
        self.max_messages_per_chat = max_messages_per_chat or settings.MAX_MESSAGES_PER_CHAT
        self.dialog_limit = dialog_limit or settings.DIALOG_FETCH_LIMIT
        self.inter_chat_delay_ms = (
            inter_chat_delay_ms if inter_chat_delay_ms is not None else settings.INTER_CHAT_DELAY_MS
        )
        self._sleep = sleep or asyncio.sleep

    async def run(self, mode: SyncMode = SyncMode.INCREMENTAL) -> SyncSummary:
        """
        Execute one full sync run.

        Raises only if the audit record cannot be opened; every other failure
        is reported through the returned summary.
        """
        started = time.monotonic()
        sync_run = await self.recorder.open_run(mode.value)

        chats_synced = 0
        messages_synced = 0
        error_message = None
        results = []

        try:
            async with self.source_factory() as source:
                conversations = await source.list_conversations(limit=self.dialog_limit)
                targets = select_target_chats(conversations, self.allowlist)

                logger.info(
                    "sync_targets_selected",
                    mode=mode.value,
                    conversations=len(conversations),
                    targets=len(targets),
                )

                for index, conversation in enumerate(targets):
                    if index and self.inter_chat_delay_ms > 0:
                        await self._sleep(self.inter_chat_delay_ms / 1000)

                    result = await self.sync_chat(source, conversation, mode)
                    results.append(result)

                    # Stored rows count even when the chat failed afterwards
                    messages_synced += result.messages_stored
                    if result.success:
                        chats_synced += 1

        except Exception as e:
            error_message = str(e) or type(e).__name__
            logger.error(
                "sync_run_failed",
                run_id=str(sync_run.id),
                error=error_message,
                error_type=type(e).__name__,
                exc_info=True,
            )
            sentry_sdk.capture_exception(e)

        duration_ms = int((time.monotonic() - started) * 1000)

        try:
            await self.recorder.close_run(
                sync_run.id,
                chats_synced=chats_synced,
                messages_synced=messages_synced,
                error_message=error_message,
            )
        except Exception as e:
            logger.error("sync_run_close_failed", run_id=str(sync_run.id), error=str(e), exc_info=True)
            sentry_sdk.capture_exception(e)

        logger.info(
            "sync_run_complete",
            run_id=str(sync_run.id),
            mode=mode.value,
            success=error_message is None,
            chats_synced=chats_synced,
            messages_synced=messages_synced,
            duration_ms=duration_ms,
        )

        return SyncSummary(
            run_id=sync_run.id,
            mode=mode,
            success=error_message is None,
            chats_synced=chats_synced,
            messages_synced=messages_synced,
            duration_ms=duration_ms,
            error=error_message,
            results=results,
        )

    async def sync_chat(self, source: Any, conversation: Conversation, mode: SyncMode) -> ChatSyncResult:
        """Sync one chat. Never raises; errors end up in the result and the logs."""
        result = ChatSyncResult(chat_id=conversation.chat_id, title=conversation.title)
        log = logger.bind(chat_id=conversation.chat_id, title=conversation.title, mode=mode.value)

        try:
            chat = await self.store.ensure_chat(conversation)
            window = compute_fetch_window(
                mode,
                chat.last_message_id,
                chat.oldest_message_id,
                self.max_messages_per_chat,
            )

            highest_stored = None
            lowest_stored = None
            pages = 0

            while True:
                pages += 1
                log.debug(
                    "chat_fetch_window",
                    min_id=window.min_id,
                    offset_id=window.offset_id,
                    limit=window.limit,
                    page=pages,
                )

                messages = await source.list_messages(conversation, window)
                result.messages_fetched += len(messages)
                storable = 0

                for message in messages:
                    record = normalize_message(message, conversation.chat_id)
                    if record is None:
                        result.messages_skipped += 1
                        continue
                    storable += 1

                    await self._enrich(source, message, record, log)

                    try:
                        await self.store.upsert_message(record)
                    except Exception as e:
                        result.failed_writes += 1
                        log.error(
                            "message_write_failed",
                            message_id=record.message_id,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        continue

                    result.messages_stored += 1
                    if highest_stored is None or record.message_id > highest_stored:
                        highest_stored = record.message_id
                    if lowest_stored is None or record.message_id < lowest_stored:
                        lowest_stored = record.message_id

                # A backward page of only service/empty messages would pin the
                # low cursor; page below it instead of ending the walk there
                if (
                    mode != SyncMode.FULL
                    or not messages
                    or storable
                    or pages >= MAX_EMPTY_BACKFILL_PAGES
                ):
                    break
                window = FetchWindow(
                    limit=self.max_messages_per_chat,
                    offset_id=min(message.id for message in messages),
                )

            # Each mode owns one cursor; last_synced_at is stamped regardless
            if mode == SyncMode.FULL:
                chat = await self.store.update_cursors(conversation.chat_id, low_candidate=lowest_stored)
            else:
                chat = await self.store.update_cursors(conversation.chat_id, high_candidate=highest_stored)

            result.success = True
            log.info(
                "chat_sync_completed",
                fetched=result.messages_fetched,
                stored=result.messages_stored,
                skipped=result.messages_skipped,
                failed_writes=result.failed_writes,
                last_message_id=chat.last_message_id,
                oldest_message_id=chat.oldest_message_id,
            )

        except Exception as e:
            result.error = str(e) or type(e).__name__
            log.error(
                "chat_sync_failed",
                stored=result.messages_stored,
                error=result.error,
                error_type=type(e).__name__,
                exc_info=True,
            )
            with sentry_sdk.new_scope() as scope:
                scope.set_tag("component", "telegram_sync")
                scope.set_tag("chat_id", conversation.chat_id)
                scope.set_context("chat", {"chat_id": conversation.chat_id, "title": conversation.title})
                sentry_sdk.capture_exception(e)

        return result

    async def _enrich(self, source: Any, message: Any, record: MessageRecord, log) -> None:
        """Best-effort sender name and media URL; failures leave the fields None."""
        if record.sender_id is not None:
            record.sender_name = await self._resolve_sender_name(source, message, record, log)

        media = record.media
        if media is not None and media.is_image and self.media_storage.configured():
            record.media_url = await self._store_media(source, message, record, log)

    async def _resolve_sender_name(self, source: Any, message: Any, record: MessageRecord, log) -> Optional[str]:
        try:
            sender = await source.resolve_sender(message)
        except Exception as e:
            log.debug("sender_lookup_failed", message_id=record.message_id, error=str(e))
            return None
        return sender_display_name(sender)

    async def _store_media(self, source: Any, message: Any, record: MessageRecord, log) -> Optional[str]:
        try:
            data = await source.download_media(message)
        except Exception as e:
            log.warning("media_download_failed", message_id=record.message_id, error=str(e))
            return None
        if not data:
            return None

        try:
            # boto3 is blocking
            return await asyncio.to_thread(
                self.media_storage.upload,
                data,
                record.chat_id,
                record.message_id,
                record.media.extension,
            )
        except Exception as e:
            log.warning("media_upload_failed", message_id=record.message_id, error=str(e))
            return None


# Global service instance (singleton pattern); holds no connection state
_sync_service: Optional[TelegramSyncService] = None


def get_sync_service() -> TelegramSyncService:
    """
    Get the global sync service instance (singleton).

    Returns:
        TelegramSyncService instance
    """
    global _sync_service

    if _sync_service is None:
        _sync_service = TelegramSyncService()

    return _sync_service
