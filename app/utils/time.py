"""
Time helpers shared by slot and trip services.

All timestamps are naive UTC (see ``app.schemas.common.to_naive_utc``).
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Tuple


def utcnow() -> datetime:
    return datetime.utcnow()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return ``[start, end)`` for a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Rounded share of ``part`` in ``whole``; 0 when ``whole`` is empty."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def turn_time_minutes(started_at: Optional[datetime], completed_at: Optional[datetime]) -> Optional[int]:
    """
    Turn time is the elapsed time between trip start and completion.

    Returns whole minutes, or ``None`` when the trip has not both started
    and finished.
    """
    if started_at is None or completed_at is None:
        return None
    return round_half_up((completed_at - started_at).total_seconds() / 60)


def average_minutes(values: Iterable[int]) -> int:
    values = list(values)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))
