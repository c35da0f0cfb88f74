"""
Fetch window computation and cursor ratchets.

Each chat carries two independent watermarks:

- ``last_message_id``: the highest message id ever stored. Incremental runs
  move it forward and nothing ever moves it back.
- ``oldest_message_id``: the lowest message id ever stored. Full-backfill
  runs move it backward and nothing ever moves it forward.

The window for a run is derived from those cursors and the run mode.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SyncMode(str, Enum):
    """Run mode selected by the trigger."""

    INCREMENTAL = "incremental"
    FULL = "full"


@dataclass(frozen=True)
class FetchWindow:
    """
    One message-list request.

    At most one bound is set: ``min_id`` asks for ids strictly greater than
    it, ``offset_id`` for ids strictly lower than it. With neither, the most
    recent ``limit`` messages are requested.
    """

    limit: int
    min_id: Optional[int] = None
    offset_id: Optional[int] = None

    def __post_init__(self):
        if self.min_id is not None and self.offset_id is not None:
            raise ValueError("FetchWindow takes min_id or offset_id, not both")
        if self.limit <= 0:
            raise ValueError("FetchWindow limit must be positive")

    @property
    def is_backward(self) -> bool:
        return self.offset_id is not None


def compute_fetch_window(
    mode: SyncMode,
    last_message_id: Optional[int],
    oldest_message_id: Optional[int],
    limit: int,
) -> FetchWindow:
    """Pick the request window for one chat from its cursors and the run mode."""
    last = last_message_id or 0
    oldest = oldest_message_id or 0

    if mode == SyncMode.FULL:
        if oldest > 0:
            # Continue the backward walk below the low-water mark
            return FetchWindow(limit=limit, offset_id=oldest)
        if last > 0:
            # Start backfilling from just above the high-water mark
            return FetchWindow(limit=limit, offset_id=last + 1)
        return FetchWindow(limit=limit)

    if last > 0:
        return FetchWindow(limit=limit, min_id=last)
    return FetchWindow(limit=limit)


def advance_high_watermark(stored: Optional[int], candidate: Optional[int]) -> int:
    """New ``last_message_id``: never lower than what is stored."""
    stored = stored or 0
    if candidate is None:
        return stored
    return max(stored, candidate)


def retract_low_watermark(stored: Optional[int], candidate: Optional[int]) -> Optional[int]:
    """New ``oldest_message_id``: never higher than what is stored. Unset is 0/None."""
    if not stored:
        return candidate if candidate else stored
    if candidate is None:
        return stored
    return min(stored, candidate)
