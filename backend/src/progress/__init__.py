"""Progress engine: ledger transitions, streaks, analytics and stats."""

from src.progress.analytics import AnalyticsPeriod, AnalyticsReport, CompletedLessonRecord, aggregate_completions
from src.progress.events import GoalAchieved, LedgerEvent, LessonCompleted
from src.progress.ledger import ProgressLedger, derive_status, milestone_progress
from src.progress.stats import StatsUpdater, apply_ledger_events, fold_event, refresh_user_streak
from src.progress.streaks import StreakSummary, calculate_current_streak, update_longest_streak


__all__ = [
    "AnalyticsPeriod",
    "AnalyticsReport",
    "CompletedLessonRecord",
    "GoalAchieved",
    "LedgerEvent",
    "LessonCompleted",
    "ProgressLedger",
    "StatsUpdater",
    "StreakSummary",
    "aggregate_completions",
    "apply_ledger_events",
    "calculate_current_streak",
    "derive_status",
    "fold_event",
    "milestone_progress",
    "refresh_user_streak",
    "update_longest_streak",
]
