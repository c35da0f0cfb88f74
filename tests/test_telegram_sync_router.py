"""API tests for the cron trigger and inspection endpoints."""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routers.telegram_sync import get_recorder, get_store
from app.services.sync_window import SyncMode
from app.services.telegram_sync_service import SyncSummary, get_sync_service

AUTH = {"Authorization": "Bearer test-cron-secret"}
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_summary(**overrides) -> SyncSummary:
    values = {
        "run_id": uuid.uuid4(),
        "mode": SyncMode.INCREMENTAL,
        "success": True,
        "chats_synced": 2,
        "messages_synced": 17,
        "duration_ms": 4210,
    }
    values.update(overrides)
    return SyncSummary(**values)


def make_run(**overrides):
    values = {
        "id": uuid.uuid4(),
        "started_at": NOW,
        "finished_at": NOW,
        "duration_ms": 1200,
        "status": "success",
        "mode": "incremental",
        "chats_synced": 1,
        "messages_synced": 3,
        "error_message": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def sync_service() -> MagicMock:
    service = MagicMock()
    service.run = AsyncMock(return_value=make_summary())
    return service


@pytest.fixture
def store() -> MagicMock:
    store = MagicMock()
    store.get_chat = AsyncMock(return_value=None)
    store.list_chats = AsyncMock(return_value=[])
    store.list_messages = AsyncMock(return_value=([], 0))
    store.count_messages = AsyncMock(return_value=0)
    return store


@pytest.fixture
def recorder() -> MagicMock:
    recorder = MagicMock()
    recorder.list_runs = AsyncMock(return_value=[])
    return recorder


@pytest.fixture
def client(sync_service, store, recorder):
    app.dependency_overrides[get_sync_service] = lambda: sync_service
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_recorder] = lambda: recorder
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAuth:
    def test_missing_secret_is_rejected(self, client, sync_service) -> None:
        response = client.get("/api/cron/telegram-sync")

        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}
        sync_service.run.assert_not_awaited()

    def test_wrong_secret_is_rejected(self, client) -> None:
        response = client.post("/api/cron/telegram-sync", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_inspection_endpoints_are_guarded(self, client) -> None:
        assert client.get("/api/telegram/chats").status_code == 401
        assert client.get("/api/telegram/stats").status_code == 401

    def test_health_is_public(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestTrigger:
    def test_returns_camel_case_summary(self, client, sync_service) -> None:
        response = client.get("/api/cron/telegram-sync", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "chatsSynced": 2,
            "messagesSynced": 17,
            "durationMs": 4210,
            "error": None,
        }
        sync_service.run.assert_awaited_once_with(SyncMode.INCREMENTAL)

    def test_full_flag_selects_backfill(self, client, sync_service) -> None:
        response = client.post("/api/cron/telegram-sync?full=true", headers=AUTH)

        assert response.status_code == 200
        sync_service.run.assert_awaited_once_with(SyncMode.FULL)

    def test_failed_run_still_answers_200(self, client, sync_service) -> None:
        sync_service.run.return_value = make_summary(
            success=False, chats_synced=0, messages_synced=0, error="Telegram session is not authorized"
        )

        response = client.get("/api/cron/telegram-sync", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["error"] == "Telegram session is not authorized"

    def test_unrecorded_run_is_500(self, client, sync_service) -> None:
        sync_service.run.side_effect = RuntimeError("database down")

        response = client.get("/api/cron/telegram-sync", headers=AUTH)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to create sync run"


class TestInspection:
    def test_list_chats(self, client, store) -> None:
        store.list_chats.return_value = [
            SimpleNamespace(
                chat_id="-1001",
                title="Python Jobs",
                type="supergroup",
                username=None,
                member_count=120,
                is_active=True,
                last_message_id=12,
                oldest_message_id=7,
                last_synced_at=NOW,
            )
        ]

        response = client.get("/api/telegram/chats", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["chats"][0]["chat_id"] == "-1001"
        assert body["chats"][0]["last_message_id"] == 12

    def test_messages_of_unknown_chat_is_404(self, client) -> None:
        response = client.get("/api/telegram/chats/-999/messages", headers=AUTH)
        assert response.status_code == 404

    def test_messages_page(self, client, store) -> None:
        store.get_chat.return_value = SimpleNamespace(chat_id="-1001")
        store.list_messages.return_value = (
            [
                SimpleNamespace(
                    chat_id="-1001",
                    message_id=12,
                    sender_id="777",
                    sender_name="Ana",
                    text="Hiring",
                    date=NOW,
                    has_media=False,
                    media_type=None,
                    media_url=None,
                    reply_to_message_id=None,
                    forward_from=None,
                    entities=None,
                    buttons=[{"text": "Apply", "url": "https://apply.example.com"}],
                )
            ],
            31,
        )

        response = client.get("/api/telegram/chats/-1001/messages?limit=1&offset=5&q=hiring", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 31
        assert body["messages"][0]["buttons"][0]["text"] == "Apply"
        store.list_messages.assert_awaited_once_with("-1001", limit=1, offset=5, search="hiring")

    def test_stats(self, client, store, recorder) -> None:
        store.list_chats.return_value = [SimpleNamespace(), SimpleNamespace()]
        store.count_messages.return_value = 40
        recorder.list_runs.return_value = [make_run(status="failed", error_message="boom")]

        response = client.get("/api/telegram/stats", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["total_chats"] == 2
        assert body["total_messages"] == 40
        assert body["last_sync"]["status"] == "failed"

    def test_sync_runs(self, client, recorder) -> None:
        recorder.list_runs.return_value = [make_run(), make_run(mode="full")]

        response = client.get("/api/telegram/sync-runs?limit=2", headers=AUTH)

        assert response.status_code == 200
        assert [r["mode"] for r in response.json()] == ["incremental", "full"]
        recorder.list_runs.assert_awaited_once_with(limit=2)
