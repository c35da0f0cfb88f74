#!/usr/bin/env python3
"""
Telegram Sync Runner Script

Standalone script to run one Telegram sync. Can be executed directly or via cron.

Usage:
    python scripts/run_telegram_sync.py           # incremental catch-up
    python scripts/run_telegram_sync.py --full    # walk history backward

Cron example (every minute; flock prevents overlapping runs):
    * * * * * cd /path/to/project && flock -n /tmp/telegram_sync.lock .venv/bin/python scripts/run_telegram_sync.py
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import structlog  # noqa: E402

from app.core.logging import setup_logging  # noqa: E402
from app.db.session import engine  # noqa: E402
from app.services.sync_window import SyncMode  # noqa: E402
from app.services.telegram_sync_service import TelegramSyncService  # noqa: E402

logger = structlog.get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Telegram chat messages into the database")
    parser.add_argument(
        "--full",
        action="store_true",
        help="Full-backfill mode: fetch messages older than the stored low-water mark",
    )
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Run one sync; exit code 0 on success, 1 on a failed run, 130 on Ctrl+C."""
    args = parse_args(argv)
    mode = SyncMode.FULL if args.full else SyncMode.INCREMENTAL

    try:
        summary = await TelegramSyncService().run(mode)
    except KeyboardInterrupt:
        logger.warning("sync_interrupted")
        return 130
    except Exception as e:
        logger.error("sync_run_not_recorded", error=str(e), exc_info=True)
        return 1
    finally:
        await engine.dispose()

    failed_chats = [r for r in summary.results if not r.success]
    for result in failed_chats[:10]:
        logger.warning("chat_failed", chat_id=result.chat_id, title=result.title, error=result.error)

    logger.info(
        "sync_finished",
        mode=mode.value,
        success=summary.success,
        chats_synced=summary.chats_synced,
        messages_synced=summary.messages_synced,
        failed_chats=len(failed_chats),
        duration_ms=summary.duration_ms,
        error=summary.error,
    )
    return 0 if summary.success else 1


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
