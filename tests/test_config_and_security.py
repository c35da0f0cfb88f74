"""Tests for settings parsing, the bearer-secret check and the scheduler wiring."""

from app.config import Settings, parse_list_of_strings
from app.core import scheduler as scheduler_module
from app.core.security import verify_secret


def test_allowlist_parsed_from_comma_separated_env(monkeypatch) -> None:
    monkeypatch.setenv("CHAT_TITLE_ALLOWLIST", "Python Jobs, Remote ,,Hiring")

    settings = Settings()

    assert settings.CHAT_TITLE_ALLOWLIST == ["Python Jobs", "Remote", "Hiring"]


def test_allowlist_defaults_to_empty(monkeypatch) -> None:
    monkeypatch.delenv("CHAT_TITLE_ALLOWLIST", raising=False)
    assert Settings().CHAT_TITLE_ALLOWLIST == []


def test_parse_list_of_strings() -> None:
    assert parse_list_of_strings(None) == []
    assert parse_list_of_strings(["a", 1]) == ["a", "1"]


class TestVerifySecret:
    def test_matching_secret(self) -> None:
        assert verify_secret("s3cret", "s3cret")

    def test_mismatch(self) -> None:
        assert not verify_secret("guess", "s3cret")

    def test_unset_secret_rejects_everything(self) -> None:
        assert not verify_secret("", "")
        assert not verify_secret("anything", "")

    def test_missing_token(self) -> None:
        assert not verify_secret(None, "s3cret")


def test_scheduler_stays_off_when_disabled() -> None:
    scheduler_module.start_scheduler()

    status = scheduler_module.get_scheduler_status()

    assert status["running"] is False
    assert status["jobs"] == []
