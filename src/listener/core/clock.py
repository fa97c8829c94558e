"""Wall-clock helpers shared by the store, scheduler and minutes generator."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable

Clock = Callable[[], int]

MS_PER_MINUTE = 60_000


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def format_clock_time(timestamp_ms: int) -> str:
    """Render epoch millis as a local HH:MM:SS label."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def elapsed_minutes(start_ms: int, end_ms: int) -> int:
    """Whole minutes between two epoch-millis instants, never negative."""
    return max(0, (end_ms - start_ms) // MS_PER_MINUTE)
