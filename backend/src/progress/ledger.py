"""Progress ledger: state-transition rules for goals, milestones and lessons.

Every rule here is synchronous and free of I/O. Callers load the entity,
apply one ledger operation, drain the emitted events into the stats updater
and commit the whole unit at once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from src.exceptions import ResourceNotFoundError, ValidationError
from src.goals.models import GoalMilestone, GoalStatus
from src.lessons.models import LessonStatus

from .clock import utc_now
from .events import GoalAchieved, LedgerEvent, LessonCompleted


if TYPE_CHECKING:
    from datetime import datetime

    from src.goals.models import Goal
    from src.lessons.models import Lesson


logger = logging.getLogger(__name__)

MILESTONE_PATCH_FIELDS = frozenset({"title", "description", "completed", "order"})


def derive_status(progress: int) -> GoalStatus:
    """Map a goal's progress percentage to its derived status."""
    if progress >= 100:
        return GoalStatus.COMPLETED
    if progress > 0:
        return GoalStatus.IN_PROGRESS
    return GoalStatus.NOT_STARTED


def milestone_progress(completed: int, total: int) -> int:
    """Return round-half-up(100 * completed / total) using integer arithmetic."""
    return (200 * completed + total) // (2 * total)


def clamp_percentage(value: float) -> int:
    """Clamp a completion percentage into [0, 100], rounding half up."""
    clamped = max(0.0, min(100.0, float(value)))
    return int(clamped + 0.5)


class ProgressLedger:
    """Applies progress transitions and collects the events they produce."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._events: list[LedgerEvent] = []

    @property
    def pending_events(self) -> tuple[LedgerEvent, ...]:
        return tuple(self._events)

    def drain_events(self) -> list[LedgerEvent]:
        """Return and forget the events emitted since the last drain."""
        events, self._events = self._events, []
        return events

    # === Goals ===

    def set_goal_progress(self, goal: Goal, value: int) -> Goal:
        """Set progress directly and recompute the derived status."""
        if value is None or not 0 <= value <= 100:
            msg = "Progress must be between 0 and 100"
            raise ValidationError(msg)

        self._apply_goal_progress(goal, int(value))
        return goal

    def update_milestone(self, goal: Goal, index: int, patch: Mapping[str, Any]) -> Goal:
        """Patch the milestone at ``index`` (position in order) and recompute the goal.

        Raises
        ------
        ResourceNotFoundError
            If ``index`` is outside the goal's milestone list.
        ValidationError
            If the patch names an unknown field or a colliding order.
        """
        milestones = self._ordered_milestones(goal)
        if index < 0 or index >= len(milestones):
            raise ResourceNotFoundError("Milestone", index)

        unknown = set(patch) - MILESTONE_PATCH_FIELDS
        if unknown:
            msg = f"Unknown milestone fields: {', '.join(sorted(unknown))}"
            raise ValidationError(msg)

        milestone = milestones[index]
        was_completed = bool(milestone.completed)

        if "order" in patch and patch["order"] != milestone.order:
            new_order = patch["order"]
            if any(m.order == new_order for m in milestones if m is not milestone):
                msg = f"Milestone order {new_order} is already used in this goal"
                raise ValidationError(msg)
            milestone.order = new_order

        if "title" in patch:
            if not patch["title"]:
                msg = "Milestone title cannot be empty"
                raise ValidationError(msg)
            milestone.title = patch["title"]
        if "description" in patch:
            milestone.description = patch["description"]
        if "completed" in patch:
            milestone.completed = bool(patch["completed"])

        # completed_at is stamped once, on the first false -> true transition
        if milestone.completed and not was_completed and milestone.completed_at is None:
            milestone.completed_at = self._clock()

        goal.milestones = sorted(milestones, key=lambda m: m.order)
        self._recompute_from_milestones(goal)
        return goal

    def add_milestone(self, goal: Goal, title: str, description: str | None = None) -> Goal:
        """Append a milestone after the current last one and recompute the goal."""
        if not title:
            msg = "Milestone title cannot be empty"
            raise ValidationError(msg)

        milestones = self._ordered_milestones(goal)
        next_order = (milestones[-1].order + 1) if milestones else 1
        milestones.append(GoalMilestone(title=title, description=description, completed=False, order=next_order))

        goal.milestones = milestones
        self._recompute_from_milestones(goal)
        return goal

    def remove_milestone(self, goal: Goal, index: int) -> Goal:
        """Remove the milestone at ``index`` and recompute the goal."""
        milestones = self._ordered_milestones(goal)
        if index < 0 or index >= len(milestones):
            raise ResourceNotFoundError("Milestone", index)

        del milestones[index]
        goal.milestones = milestones
        self._recompute_from_milestones(goal)
        return goal

    def recompute_goal(self, goal: Goal) -> Goal:
        """Bring progress and status back in line with the milestone list."""
        self._recompute_from_milestones(goal)
        return goal

    # === Lessons ===

    def start_lesson(self, lesson: Lesson) -> Lesson:
        """Mark a lesson in progress; idempotent and never reopens a completed lesson."""
        now = self._clock()
        if lesson.progress_status != LessonStatus.COMPLETED.value:
            lesson.progress_status = LessonStatus.IN_PROGRESS.value
        if lesson.started_at is None:
            lesson.started_at = now
        lesson.last_accessed_at = now
        return lesson

    def update_lesson_progress(
        self,
        lesson: Lesson,
        completion_percentage: float | None = None,
        time_spent_delta: int | None = None,
    ) -> Lesson:
        """Record partial progress; reaching 100% completes the lesson exactly once."""
        now = self._clock()
        prior_status = lesson.progress_status or LessonStatus.NOT_STARTED.value

        delta = self._accumulate_time(lesson, time_spent_delta)
        # A completed lesson stays at 100%; only time keeps accumulating
        if completion_percentage is not None and prior_status != LessonStatus.COMPLETED.value:
            lesson.completion_percentage = clamp_percentage(completion_percentage)
        lesson.last_accessed_at = now

        percentage = lesson.completion_percentage or 0
        if percentage == 100 and prior_status != LessonStatus.COMPLETED.value:
            lesson.progress_status = LessonStatus.COMPLETED.value
            if lesson.completed_at is None:
                lesson.completed_at = now
            self._emit_lesson_completed(lesson, delta)
        elif 0 < percentage < 100 and prior_status == LessonStatus.NOT_STARTED.value:
            lesson.progress_status = LessonStatus.IN_PROGRESS.value
            if lesson.started_at is None:
                lesson.started_at = now

        return lesson

    def complete_lesson(
        self,
        lesson: Lesson,
        time_spent_delta: int | None = None,
        rating: int | None = None,
    ) -> Lesson:
        """Force a lesson to completed and always emit a completion event.

        The event key carries the completion epoch, so a repeated explicit
        completion yields the same key and the stats updater drops it.
        """
        if rating is not None and not 1 <= rating <= 5:
            msg = "Rating must be between 1 and 5"
            raise ValidationError(msg)

        now = self._clock()
        delta = self._accumulate_time(lesson, time_spent_delta)

        lesson.progress_status = LessonStatus.COMPLETED.value
        lesson.completion_percentage = 100
        if lesson.completed_at is None:
            lesson.completed_at = now
        lesson.last_accessed_at = now
        if rating is not None:
            lesson.user_rating = rating

        self._emit_lesson_completed(lesson, delta)
        return lesson

    # === Internals ===

    @staticmethod
    def _ordered_milestones(goal: Goal) -> list[GoalMilestone]:
        return sorted(goal.milestones or [], key=lambda m: m.order)

    def _recompute_from_milestones(self, goal: Goal) -> None:
        total = len(goal.milestones or [])
        if total == 0:
            # Nothing to derive from; keep whatever progress the goal already has
            return
        completed = sum(1 for m in goal.milestones if m.completed)
        self._apply_goal_progress(goal, milestone_progress(completed, total))

    def _apply_goal_progress(self, goal: Goal, progress: int) -> None:
        previous_status = goal.status
        status = derive_status(progress)

        goal.progress = progress
        goal.status = status.value

        if status is GoalStatus.COMPLETED and previous_status != GoalStatus.COMPLETED.value:
            logger.debug("Goal %s reached 100%%", goal.id)
            self._events.append(GoalAchieved(goal_id=goal.id, user_id=goal.user_id, achieved_at=self._clock()))

    @staticmethod
    def _accumulate_time(lesson: Lesson, time_spent_delta: int | None) -> int:
        if not time_spent_delta:
            return 0
        if time_spent_delta < 0:
            msg = "Time spent cannot be negative"
            raise ValidationError(msg)
        lesson.time_spent = (lesson.time_spent or 0) + time_spent_delta
        return time_spent_delta

    def _emit_lesson_completed(self, lesson: Lesson, time_spent_delta: int) -> None:
        self._events.append(
            LessonCompleted(
                lesson_id=lesson.id,
                user_id=lesson.user_id,
                goal_id=lesson.goal_id,
                completed_at=lesson.completed_at,
                time_spent_delta=time_spent_delta,
            )
        )
