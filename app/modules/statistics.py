"""
GlucoTrack Reading Statistics
Dashboard statistics over stored glucose readings
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from app.models import GlucoseReading
from app.schemas import GlucoseUnit, ReadingStats, to_mg_dl, to_naive_utc

logger = logging.getLogger(__name__)

LAST_WEEK = timedelta(days=7)


def _average(levels: Sequence[float]) -> Optional[float]:
    if not levels:
        return None
    return round(sum(levels) / len(levels), 1)


def reading_mg_dl(reading: GlucoseReading) -> float:
    """Reading level in mg/dL, whatever unit it was stored in"""
    return to_mg_dl(reading.glucose_level, GlucoseUnit(reading.unit))


def compute_reading_stats(
    readings: Sequence[GlucoseReading],
    normal_min: float,
    normal_max: float,
    now: Optional[datetime] = None
) -> ReadingStats:
    """
    Compute dashboard statistics

    All figures are in mg/dL; mmol/L readings are converted first.

    Args:
        readings: Stored readings
        normal_min: Lower bound of the normal range in mg/dL, inclusive
        normal_max: Upper bound of the normal range in mg/dL, inclusive
        now: Reference time for the last-week window, defaults to current UTC

    Returns:
        Totals, average, extremes, time in range and last-week average
    """
    if not readings:
        return ReadingStats()

    levels = [reading_mg_dl(r) for r in readings]
    normal = sum(1 for level in levels if normal_min <= level <= normal_max)

    # Stored timestamps are naive UTC
    cutoff = to_naive_utc(now or datetime.now(timezone.utc)) - LAST_WEEK
    recent = [
        level for r, level in zip(readings, levels)
        if to_naive_utc(r.timestamp) >= cutoff
    ]

    return ReadingStats(
        total_readings=len(levels),
        average=_average(levels),
        min=min(levels),
        max=max(levels),
        normal_readings=normal,
        time_in_range=round(normal / len(levels) * 100, 1),
        last_week_average=_average(recent)
    )
