"""Unit tests for fetch window computation and cursor ratchets."""

import pytest

from app.services.sync_window import (
    FetchWindow,
    SyncMode,
    advance_high_watermark,
    compute_fetch_window,
    retract_low_watermark,
)


class TestComputeFetchWindow:
    def test_incremental_first_sync_fetches_most_recent(self) -> None:
        window = compute_fetch_window(SyncMode.INCREMENTAL, 0, None, 50)
        assert window == FetchWindow(limit=50)
        assert not window.is_backward

    def test_incremental_fetches_above_last_message(self) -> None:
        window = compute_fetch_window(SyncMode.INCREMENTAL, 9, None, 50)
        assert window.min_id == 9
        assert window.offset_id is None

    def test_incremental_ignores_oldest_cursor(self) -> None:
        window = compute_fetch_window(SyncMode.INCREMENTAL, 120, 40, 50)
        assert window == FetchWindow(limit=50, min_id=120)

    def test_full_continues_below_oldest(self) -> None:
        window = compute_fetch_window(SyncMode.FULL, 12, 10, 50)
        assert window.offset_id == 10
        assert window.min_id is None
        assert window.is_backward

    def test_full_without_oldest_starts_just_above_last(self) -> None:
        window = compute_fetch_window(SyncMode.FULL, 12, None, 50)
        assert window.offset_id == 13

    def test_full_on_fresh_chat_fetches_most_recent(self) -> None:
        assert compute_fetch_window(SyncMode.FULL, 0, 0, 20) == FetchWindow(limit=20)

    def test_none_cursors_are_treated_as_unset(self) -> None:
        assert compute_fetch_window(SyncMode.INCREMENTAL, None, None, 5) == FetchWindow(limit=5)


class TestFetchWindow:
    def test_rejects_both_bounds(self) -> None:
        with pytest.raises(ValueError):
            FetchWindow(limit=10, min_id=1, offset_id=5)

    def test_rejects_non_positive_limit(self) -> None:
        with pytest.raises(ValueError):
            FetchWindow(limit=0)


class TestRatchets:
    @pytest.mark.parametrize(
        "stored,candidate,expected",
        [
            (9, 12, 12),
            (12, 9, 12),
            (0, 5, 5),
            (None, 5, 5),
            (7, None, 7),
            (None, None, 0),
        ],
    )
    def test_high_watermark_never_decreases(self, stored, candidate, expected) -> None:
        assert advance_high_watermark(stored, candidate) == expected

    @pytest.mark.parametrize(
        "stored,candidate,expected",
        [
            (10, 7, 7),
            (7, 10, 7),
            (None, 7, 7),
            (0, 7, 7),
            (7, None, 7),
            (None, None, None),
        ],
    )
    def test_low_watermark_never_increases(self, stored, candidate, expected) -> None:
        assert retract_low_watermark(stored, candidate) == expected
