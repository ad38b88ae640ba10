"""Bucket completed lessons over a lookback window and compare with the window before it."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID  # noqa: TC003

from .clock import as_utc, utc_now


FALLBACK_CATEGORY = "other"


class AnalyticsPeriod(str, Enum):
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"

    @property
    def length(self) -> timedelta:
        return _PERIOD_LENGTHS[self]

    @classmethod
    def parse(cls, value: str | None) -> AnalyticsPeriod:
        """Parse a period string, defaulting to 7 days for missing or unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.LAST_7_DAYS


_PERIOD_LENGTHS = {
    AnalyticsPeriod.LAST_24_HOURS: timedelta(hours=24),
    AnalyticsPeriod.LAST_7_DAYS: timedelta(days=7),
    AnalyticsPeriod.LAST_30_DAYS: timedelta(days=30),
    AnalyticsPeriod.LAST_90_DAYS: timedelta(days=90),
}


@dataclass(frozen=True)
class CompletedLessonRecord:
    """The slice of a completed lesson the aggregator needs."""

    lesson_id: UUID
    completed_at: datetime
    time_spent: int
    goal_category: str | None = None

    @property
    def category(self) -> str:
        return self.goal_category or FALLBACK_CATEGORY


@dataclass
class Bucket:
    lessons: int = 0
    time_spent: int = 0

    def add(self, record: CompletedLessonRecord) -> None:
        self.lessons += 1
        self.time_spent += record.time_spent


@dataclass(frozen=True)
class PeriodComparison:
    previous_period_lessons: int
    previous_period_time: int
    lessons_change_pct: float | None
    time_change_pct: float | None


@dataclass
class AnalyticsReport:
    period: AnalyticsPeriod
    start: datetime
    end: datetime
    total_lessons: int = 0
    total_time: int = 0
    daily_progress: dict[str, Bucket] = field(default_factory=dict)
    category_breakdown: dict[str, Bucket] = field(default_factory=dict)
    comparison: PeriodComparison | None = None


def window_bounds(period: AnalyticsPeriod, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return (start, end) of the primary window ending at ``now``."""
    end = as_utc(now or utc_now())
    return end - period.length, end


def comparison_start(period: AnalyticsPeriod, now: datetime | None = None) -> datetime:
    """Earliest timestamp the caller must load to fill both windows."""
    start, _ = window_bounds(period, now)
    return start - period.length


def percent_change(current: int, previous: int) -> float | None:
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 1)


def aggregate_completions(
    records: Iterable[CompletedLessonRecord],
    period: AnalyticsPeriod = AnalyticsPeriod.LAST_7_DAYS,
    now: datetime | None = None,
) -> AnalyticsReport:
    """Aggregate completed lessons into day and category buckets.

    Records inside [start, end] feed the primary window; records inside
    [start - length, start) feed the comparison. Anything else is ignored.
    Buckets keep the order in which their key first appears, oldest lesson
    first.
    """
    start, end = window_bounds(period, now)
    previous_start = start - period.length

    report = AnalyticsReport(period=period, start=start, end=end)
    previous_lessons = 0
    previous_time = 0

    for record in sorted(records, key=lambda r: as_utc(r.completed_at)):
        completed_at = as_utc(record.completed_at)
        time_spent = record.time_spent or 0

        if start <= completed_at <= end:
            day_key = completed_at.date().isoformat()
            report.daily_progress.setdefault(day_key, Bucket()).add(record)
            report.category_breakdown.setdefault(record.category, Bucket()).add(record)
            report.total_lessons += 1
            report.total_time += time_spent
        elif previous_start <= completed_at < start:
            previous_lessons += 1
            previous_time += time_spent

    report.comparison = PeriodComparison(
        previous_period_lessons=previous_lessons,
        previous_period_time=previous_time,
        lessons_change_pct=percent_change(report.total_lessons, previous_lessons),
        time_change_pct=percent_change(report.total_time, previous_time),
    )
    return report
