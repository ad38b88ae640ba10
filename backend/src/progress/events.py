"""Domain events emitted by the progress ledger on qualifying transitions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from .clock import as_utc


@dataclass(frozen=True)
class LessonCompleted:
    """A lesson transitioned into (or was explicitly marked) completed."""

    lesson_id: UUID
    user_id: UUID
    goal_id: UUID | None
    completed_at: datetime
    time_spent_delta: int = 0

    @property
    def key(self) -> str:
        # Lesson identity + completion epoch; completed_at is stamped once per lesson
        epoch = int(as_utc(self.completed_at).timestamp())
        return f"lesson-completed:{self.lesson_id}:{epoch}"


@dataclass(frozen=True)
class GoalAchieved:
    """A goal's derived status transitioned into completed."""

    goal_id: UUID
    user_id: UUID
    achieved_at: datetime

    @property
    def key(self) -> str:
        return f"goal-achieved:{self.goal_id}"


LedgerEvent = LessonCompleted | GoalAchieved
