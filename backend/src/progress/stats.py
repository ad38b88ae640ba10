"""Fold ledger events into per-user counters exactly once per event key."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import select

from src.goals.models import Goal
from src.lessons.models import Lesson, LessonStatus
from src.users.models import AppliedStatsEvent, User

from .events import GoalAchieved, LedgerEvent, LessonCompleted
from .streaks import StreakSummary, summarize_streak


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from .ledger import ProgressLedger


logger = logging.getLogger(__name__)


def fold_event(user: User, event: LedgerEvent, goal: Goal | None = None) -> None:
    """Apply a single event's increments to the user (and the linked goal)."""
    if isinstance(event, LessonCompleted):
        delta = event.time_spent_delta or 0
        user.total_lessons_completed = (user.total_lessons_completed or 0) + 1
        user.total_time_spent = (user.total_time_spent or 0) + delta
        if goal is not None:
            goal.lessons_completed = (goal.lessons_completed or 0) + 1
            goal.actual_hours = round((goal.actual_hours or 0.0) + delta / 60, 2)
    elif isinstance(event, GoalAchieved):
        user.total_goals_achieved = (user.total_goals_achieved or 0) + 1


class StatsUpdater:
    """Applies drained ledger events to user stats inside the caller's unit of work.

    The caller commits. Keys of applied events are written in the same
    transaction, so a rolled-back unit also forgets the keys.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def apply(self, user: User, events: Iterable[LedgerEvent]) -> int:
        """Apply unseen events and return how many were applied."""
        pending = [e for e in events if e.user_id == user.id]
        if not pending:
            return 0

        keys = [e.key for e in pending]
        result = await self.session.execute(
            select(AppliedStatsEvent.event_key).where(
                AppliedStatsEvent.user_id == user.id,
                AppliedStatsEvent.event_key.in_(keys),
            )
        )
        seen = set(result.scalars().all())

        applied = 0
        for event in pending:
            if event.key in seen:
                logger.debug(f"Skipping already applied stats event {event.key}")
                continue
            seen.add(event.key)

            goal = await self._linked_goal(user, event)
            fold_event(user, event, goal)
            self.session.add(AppliedStatsEvent(user_id=user.id, event_key=event.key))
            applied += 1

        if applied:
            logger.info(f"Applied {applied} stats event(s) for user {user.id}")
        return applied

    async def _linked_goal(self, user: User, event: LedgerEvent) -> Goal | None:
        if not isinstance(event, LessonCompleted) or event.goal_id is None:
            return None
        goal = await self.session.get(Goal, event.goal_id)
        if goal is None or goal.user_id != user.id:
            return None
        return goal


async def apply_ledger_events(session: AsyncSession, user: User, ledger: ProgressLedger) -> int:
    """Drain the ledger into the user's counters and refresh the streak if anything changed."""
    events = ledger.drain_events()
    if not events:
        return 0
    applied = await StatsUpdater(session).apply(user, events)
    if applied:
        await refresh_user_streak(session, user)
    return applied


async def completion_times(session: AsyncSession, user_id: object) -> list:
    """Return completed_at for every completed lesson of the user."""
    result = await session.execute(
        select(Lesson.completed_at).where(
            Lesson.user_id == user_id,
            Lesson.progress_status == LessonStatus.COMPLETED.value,
            Lesson.completed_at.is_not(None),
        )
    )
    return list(result.scalars().all())


async def refresh_user_streak(session: AsyncSession, user: User, today: date | None = None) -> StreakSummary:
    """Recompute the user's current streak from history and raise longest if needed.

    Only dirties the user row when a value actually changes.
    """
    times = await completion_times(session, user.id)
    summary = summarize_streak(times, previous_longest=user.longest_streak, today=today)
    if user.current_streak != summary.current:
        user.current_streak = summary.current
    if user.longest_streak != summary.longest:
        user.longest_streak = summary.longest
    return summary
