"""
Half-open time windows and calendar bucketing.

Every window is [start, end): a timestamp equal to `end` belongs to the next
window. Calendar boundaries are local midnights in the engine's configured
time zone, converted to absolute instants, so adjacent buckets share their
boundary instant and per-bucket counts always add up to the parent window.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any


class Granularity(Enum):
    """Calendar bucket sizes for trend reporting."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) between two aware datetimes."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("Window boundaries must be timezone-aware")
        if self.end < self.start:
            raise ValueError(
                f"Window end {self.end.isoformat()} is before start {self.start.isoformat()}"
            )

    def contains(self, moment: datetime | None) -> bool:
        if moment is None:
            return False
        return self.start <= moment < self.end

    @property
    def empty(self) -> bool:
        return self.start == self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.astimezone(timezone.utc).isoformat(),
            "end": self.end.astimezone(timezone.utc).isoformat(),
        }


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Start of a calendar day in `tz`, as an aware UTC datetime."""
    return datetime(day.year, day.month, day.day, tzinfo=tz).astimezone(timezone.utc)


def period_start(day: date, granularity: Granularity) -> date:
    """First calendar day of the period containing `day`."""
    if granularity is Granularity.DAY:
        return day
    if granularity is Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def next_period_start(start: date, granularity: Granularity) -> date:
    """First calendar day of the period following the one starting at `start`."""
    if granularity is Granularity.DAY:
        return start + timedelta(days=1)
    if granularity is Granularity.WEEK:
        return start + timedelta(days=7)
    if start.month == 12:
        return date(start.year + 1, 1, 1)
    return date(start.year, start.month + 1, 1)


def period_label(start: date, granularity: Granularity) -> str:
    if granularity is Granularity.DAY:
        return start.isoformat()
    if granularity is Granularity.WEEK:
        iso_year, iso_week, _ = start.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{start.year}-{start.month:02d}"


def calendar_window(moment: datetime, granularity: Granularity, tz: tzinfo) -> TimeWindow:
    """
    Whole calendar period (day, week or month) containing `moment` in `tz`.

    Args:
        moment: Any aware datetime inside the wanted period
        granularity: Period size
        tz: Time zone that defines where days start

    Returns:
        TimeWindow spanning the full period
    """
    local_day = moment.astimezone(tz).date()
    start = period_start(local_day, granularity)
    end = next_period_start(start, granularity)
    return TimeWindow(local_midnight(start, tz), local_midnight(end, tz))


def day_window(moment: datetime, tz: tzinfo) -> TimeWindow:
    """Calendar day containing `moment`, used for the daily quota."""
    return calendar_window(moment, Granularity.DAY, tz)


def quota_day(moment: datetime, tz: tzinfo) -> str:
    """Label (YYYY-MM-DD) of the local calendar day a claim at `moment` is charged to."""
    return moment.astimezone(tz).date().isoformat()


def split_window(
    window: TimeWindow, granularity: Granularity, tz: tzinfo
) -> list[tuple[str, TimeWindow]]:
    """
    Partition a window into calendar-aligned sub-windows.

    The first and last buckets are clipped to the window, so the buckets
    cover it exactly with no gaps or overlaps.

    Args:
        window: Window to split
        granularity: Bucket size
        tz: Time zone that defines calendar boundaries

    Returns:
        List of (label, sub-window) in chronological order
    """
    buckets: list[tuple[str, TimeWindow]] = []
    boundary = period_start(window.start.astimezone(tz).date(), granularity)
    cursor = window.start

    while cursor < window.end:
        following = next_period_start(boundary, granularity)
        bucket_end = min(local_midnight(following, tz), window.end)
        buckets.append((period_label(boundary, granularity), TimeWindow(cursor, bucket_end)))
        cursor = bucket_end
        boundary = following

    return buckets
