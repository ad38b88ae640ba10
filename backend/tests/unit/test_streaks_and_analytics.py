import uuid
from datetime import UTC, date, datetime, timedelta

import pytest

from src.progress.analytics import (
    AnalyticsPeriod,
    CompletedLessonRecord,
    aggregate_completions,
    comparison_start,
    percent_change,
    window_bounds,
)
from src.progress.streaks import calculate_current_streak, summarize_streak, update_longest_streak


TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 18, 0, tzinfo=UTC)


def at(day_offset: int, hour: int = 9) -> datetime:
    """UTC timestamp ``day_offset`` days before TODAY."""
    day = TODAY - timedelta(days=day_offset)
    return datetime(day.year, day.month, day.day, hour, tzinfo=UTC)


def record(completed_at: datetime, minutes: int = 10, category: str | None = "programming") -> CompletedLessonRecord:
    return CompletedLessonRecord(
        lesson_id=uuid.uuid4(),
        completed_at=completed_at,
        time_spent=minutes,
        goal_category=category,
    )


class TestCurrentStreak:
    def test_no_completions(self) -> None:
        assert calculate_current_streak([], today=TODAY) == 0

    def test_run_ending_today(self) -> None:
        assert calculate_current_streak([at(0), at(1), at(2)], today=TODAY) == 3

    def test_run_ending_yesterday_still_counts(self) -> None:
        assert calculate_current_streak([at(1), at(2)], today=TODAY) == 2

    def test_run_ending_two_days_ago_is_broken(self) -> None:
        assert calculate_current_streak([at(2), at(3), at(4)], today=TODAY) == 0

    def test_several_completions_on_one_day_count_once(self) -> None:
        times = [at(0, 8), at(0, 12), at(0, 20), at(1)]
        assert calculate_current_streak(times, today=TODAY) == 2

    def test_gap_stops_the_run(self) -> None:
        assert calculate_current_streak([at(0), at(1), at(3), at(4)], today=TODAY) == 2

    def test_future_and_missing_times_are_ignored(self) -> None:
        assert calculate_current_streak([None, at(-1), at(0)], today=TODAY) == 1

    def test_naive_times_are_read_as_utc(self) -> None:
        naive = [at(0).replace(tzinfo=None), at(1).replace(tzinfo=None)]
        assert calculate_current_streak(naive, today=TODAY) == 2


class TestLongestStreak:
    def test_longest_is_a_running_maximum(self) -> None:
        assert update_longest_streak(5, 3) == 5
        assert update_longest_streak(2, 3) == 3
        assert update_longest_streak(None, 0) == 0

    def test_summary_keeps_longest_after_break(self) -> None:
        summary = summarize_streak([at(5), at(6)], previous_longest=4, today=TODAY)
        assert summary.current == 0
        assert summary.longest == 4


class TestAnalyticsWindows:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("24h", AnalyticsPeriod.LAST_24_HOURS),
            ("30d", AnalyticsPeriod.LAST_30_DAYS),
            ("90d", AnalyticsPeriod.LAST_90_DAYS),
            ("1y", AnalyticsPeriod.LAST_7_DAYS),
            (None, AnalyticsPeriod.LAST_7_DAYS),
        ],
    )
    def test_parse_defaults_to_seven_days(self, raw, expected) -> None:
        assert AnalyticsPeriod.parse(raw) is expected

    def test_comparison_window_has_same_length(self) -> None:
        start, end = window_bounds(AnalyticsPeriod.LAST_30_DAYS, NOW)
        assert end - start == timedelta(days=30)
        assert start - comparison_start(AnalyticsPeriod.LAST_30_DAYS, NOW) == timedelta(days=30)

    def test_percent_change(self) -> None:
        assert percent_change(3, 2) == 50.0
        assert percent_change(1, 3) == -66.7
        assert percent_change(4, 0) is None


class TestAggregateCompletions:
    def test_buckets_by_day_and_category(self) -> None:
        records = [
            record(at(1), 20),
            record(at(1, 15), 10, "language"),
            record(at(3), 30),
            record(at(2), 5, None),
        ]

        report = aggregate_completions(records, AnalyticsPeriod.LAST_7_DAYS, NOW)

        assert report.total_lessons == 4
        assert report.total_time == 65
        assert list(report.daily_progress) == ["2026-03-07", "2026-03-08", "2026-03-09"]
        assert report.daily_progress["2026-03-09"].lessons == 2
        assert report.daily_progress["2026-03-09"].time_spent == 30
        assert report.category_breakdown["programming"].lessons == 2
        assert report.category_breakdown["other"].time_spent == 5
        assert report.category_breakdown["language"].lessons == 1

    def test_previous_window_feeds_comparison_only(self) -> None:
        records = [record(at(1), 30), record(at(2), 30), record(at(9), 20), record(at(20), 99)]

        report = aggregate_completions(records, AnalyticsPeriod.LAST_7_DAYS, NOW)

        assert report.total_lessons == 2
        assert report.comparison.previous_period_lessons == 1
        assert report.comparison.previous_period_time == 20
        assert report.comparison.lessons_change_pct == 100.0
        assert report.comparison.time_change_pct == 200.0

    def test_empty_history(self) -> None:
        report = aggregate_completions([], AnalyticsPeriod.LAST_24_HOURS, NOW)

        assert report.total_lessons == 0
        assert report.daily_progress == {}
        assert report.comparison.lessons_change_pct is None

    def test_day_window_boundaries(self) -> None:
        inside = NOW - timedelta(hours=23)
        previous = NOW - timedelta(hours=30)

        report = aggregate_completions([record(inside), record(previous)], AnalyticsPeriod.LAST_24_HOURS, NOW)

        assert report.total_lessons == 1
        assert report.comparison.previous_period_lessons == 1
