"""Consecutive-day learning streaks derived from lesson completion times."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from .clock import as_utc, utc_now


@dataclass(frozen=True)
class StreakSummary:
    current: int
    longest: int


def completion_days(completion_times: Iterable[datetime | None], today: date) -> list[date]:
    """Distinct UTC calendar days with a completion, newest first, ignoring future days."""
    days = {as_utc(ts).date() for ts in completion_times if ts is not None}
    return sorted((d for d in days if d <= today), reverse=True)


def calculate_current_streak(completion_times: Iterable[datetime | None], today: date | None = None) -> int:
    """Count consecutive completion days ending today or yesterday.

    Several completions on one day count as a single streak day. A missing
    day breaks the run.
    """
    today = today or utc_now().date()
    days = completion_days(completion_times, today)
    if not days:
        return 0

    cursor = days[0]
    if (today - cursor).days > 1:
        return 0

    streak = 1
    for day in days[1:]:
        if (cursor - day).days != 1:
            break
        streak += 1
        cursor = day
    return streak


def update_longest_streak(longest: int | None, current: int) -> int:
    """Running maximum of every current streak observed."""
    return max(longest or 0, current)


def summarize_streak(
    completion_times: Iterable[datetime | None],
    previous_longest: int | None = 0,
    today: date | None = None,
) -> StreakSummary:
    current = calculate_current_streak(completion_times, today)
    return StreakSummary(current=current, longest=update_longest_streak(previous_longest, current))
