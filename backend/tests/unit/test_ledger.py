import uuid
from datetime import UTC, date, datetime

import pytest

from src.exceptions import ResourceNotFoundError, ValidationError
from src.goals.models import Goal, GoalMilestone, GoalStatus
from src.lessons.models import Lesson, LessonStatus
from src.progress.events import GoalAchieved, LessonCompleted
from src.progress.ledger import ProgressLedger, clamp_percentage, derive_status, milestone_progress


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def make_goal(milestones: int = 0, completed: int = 0) -> Goal:
    return Goal(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        title="Learn Rust",
        category="programming",
        difficulty="beginner",
        target_date=date(2030, 1, 1),
        status=GoalStatus.NOT_STARTED.value,
        progress=0,
        milestones=[
            GoalMilestone(title=f"Step {i}", completed=i <= completed, order=i) for i in range(1, milestones + 1)
        ],
    )


def make_lesson(**overrides) -> Lesson:
    fields = {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "goal_id": None,
        "title": "Ownership",
        "type": "article",
        "progress_status": LessonStatus.NOT_STARTED.value,
        "time_spent": 0,
        "completion_percentage": 0,
    }
    fields.update(overrides)
    return Lesson(**fields)


@pytest.fixture
def ledger() -> ProgressLedger:
    return ProgressLedger(clock=lambda: NOW)


class TestDerivations:
    @pytest.mark.parametrize(
        ("progress", "expected"),
        [(0, GoalStatus.NOT_STARTED), (1, GoalStatus.IN_PROGRESS), (99, GoalStatus.IN_PROGRESS), (100, GoalStatus.COMPLETED)],
    )
    def test_derive_status(self, progress, expected) -> None:
        assert derive_status(progress) is expected

    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [(0, 4, 0), (2, 4, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 3, 100)],
    )
    def test_milestone_progress_rounds_half_up(self, completed, total, expected) -> None:
        assert milestone_progress(completed, total) == expected

    @pytest.mark.parametrize(("value", "expected"), [(-5, 0), (49.5, 50), (72.4, 72), (140, 100)])
    def test_clamp_percentage(self, value, expected) -> None:
        assert clamp_percentage(value) == expected


class TestGoalTransitions:
    def test_completing_half_the_milestones(self, ledger) -> None:
        goal = make_goal(milestones=4)

        ledger.update_milestone(goal, 0, {"completed": True})
        ledger.update_milestone(goal, 1, {"completed": True})

        assert goal.progress == 50
        assert goal.status == GoalStatus.IN_PROGRESS.value
        assert goal.milestones[0].completed_at == NOW
        assert ledger.drain_events() == []

    def test_completing_last_milestone_emits_goal_achieved_once(self, ledger) -> None:
        goal = make_goal(milestones=2, completed=1)

        ledger.update_milestone(goal, 1, {"completed": True})
        ledger.update_milestone(goal, 1, {"title": "Renamed"})

        events = ledger.drain_events()
        assert goal.progress == 100
        assert goal.status == GoalStatus.COMPLETED.value
        assert events == [GoalAchieved(goal_id=goal.id, user_id=goal.user_id, achieved_at=NOW)]

    def test_completed_at_is_kept_when_milestone_is_reopened(self, ledger) -> None:
        goal = make_goal(milestones=2)
        ledger.update_milestone(goal, 0, {"completed": True})

        ledger.update_milestone(goal, 0, {"completed": False})

        assert goal.milestones[0].completed is False
        assert goal.milestones[0].completed_at == NOW
        assert goal.progress == 0
        assert goal.status == GoalStatus.NOT_STARTED.value

    def test_index_out_of_range(self, ledger) -> None:
        goal = make_goal(milestones=2)
        with pytest.raises(ResourceNotFoundError):
            ledger.update_milestone(goal, 2, {"completed": True})
        with pytest.raises(ResourceNotFoundError):
            ledger.remove_milestone(goal, -1)

    def test_unknown_patch_field_is_rejected(self, ledger) -> None:
        goal = make_goal(milestones=1)
        with pytest.raises(ValidationError, match="priority"):
            ledger.update_milestone(goal, 0, {"priority": "high"})

    def test_colliding_order_is_rejected(self, ledger) -> None:
        goal = make_goal(milestones=3)
        with pytest.raises(ValidationError, match="already used"):
            ledger.update_milestone(goal, 0, {"order": 2})

    def test_reorder_moves_milestone(self, ledger) -> None:
        goal = make_goal(milestones=2)

        ledger.update_milestone(goal, 0, {"order": 5})

        assert [m.title for m in goal.milestones] == ["Step 2", "Step 1"]

    def test_add_milestone_appends_and_recomputes(self, ledger) -> None:
        goal = make_goal(milestones=1, completed=1)
        goal.progress = 100
        goal.status = GoalStatus.COMPLETED.value

        ledger.add_milestone(goal, "Another step")

        assert [m.order for m in goal.milestones] == [1, 2]
        assert goal.progress == 50
        assert goal.status == GoalStatus.IN_PROGRESS.value

    def test_add_first_milestone_starts_at_one(self, ledger) -> None:
        goal = make_goal()
        ledger.add_milestone(goal, "First")
        assert goal.milestones[0].order == 1

    def test_add_milestone_requires_title(self, ledger) -> None:
        with pytest.raises(ValidationError):
            ledger.add_milestone(make_goal(), "")

    def test_remove_last_incomplete_milestone_completes_goal(self, ledger) -> None:
        goal = make_goal(milestones=3, completed=2)

        ledger.remove_milestone(goal, 2)

        assert goal.progress == 100
        assert isinstance(ledger.drain_events()[0], GoalAchieved)

    def test_removing_every_milestone_keeps_progress(self, ledger) -> None:
        goal = make_goal(milestones=1)
        goal.progress = 40

        ledger.remove_milestone(goal, 0)

        assert goal.milestones == []
        assert goal.progress == 40

    @pytest.mark.parametrize("value", [-1, 101, None])
    def test_set_progress_out_of_range(self, ledger, value) -> None:
        with pytest.raises(ValidationError):
            ledger.set_goal_progress(make_goal(), value)

    def test_set_progress_overrides_owner_status(self, ledger) -> None:
        goal = make_goal()
        goal.status = GoalStatus.PAUSED.value

        ledger.set_goal_progress(goal, 30)

        assert goal.status == GoalStatus.IN_PROGRESS.value

    def test_set_progress_to_100_twice_emits_once(self, ledger) -> None:
        goal = make_goal()

        ledger.set_goal_progress(goal, 100)
        ledger.set_goal_progress(goal, 100)

        assert len(ledger.drain_events()) == 1


class TestLessonTransitions:
    def test_start_is_idempotent(self, ledger) -> None:
        lesson = make_lesson()

        ledger.start_lesson(lesson)
        first_started = lesson.started_at
        ledger.start_lesson(lesson)

        assert lesson.progress_status == LessonStatus.IN_PROGRESS.value
        assert lesson.started_at == first_started == NOW

    def test_start_never_reopens_completed_lesson(self, ledger) -> None:
        lesson = make_lesson(progress_status=LessonStatus.COMPLETED.value, completion_percentage=100)
        ledger.start_lesson(lesson)
        assert lesson.progress_status == LessonStatus.COMPLETED.value

    def test_partial_progress_starts_lesson(self, ledger) -> None:
        lesson = make_lesson()

        ledger.update_lesson_progress(lesson, completion_percentage=50, time_spent_delta=20)

        assert lesson.progress_status == LessonStatus.IN_PROGRESS.value
        assert lesson.started_at == NOW
        assert lesson.time_spent == 20
        assert ledger.drain_events() == []

    def test_reaching_100_completes_exactly_once(self, ledger) -> None:
        lesson = make_lesson(progress_status=LessonStatus.IN_PROGRESS.value, completion_percentage=50, time_spent=20)

        ledger.update_lesson_progress(lesson, completion_percentage=100, time_spent_delta=10)
        ledger.update_lesson_progress(lesson, completion_percentage=100, time_spent_delta=5)

        events = ledger.drain_events()
        assert lesson.progress_status == LessonStatus.COMPLETED.value
        assert lesson.completed_at == NOW
        assert lesson.time_spent == 35
        assert len(events) == 1
        assert events[0].time_spent_delta == 10

    def test_completed_lesson_keeps_full_percentage(self, ledger) -> None:
        lesson = make_lesson()
        ledger.update_lesson_progress(lesson, completion_percentage=100)

        ledger.update_lesson_progress(lesson, completion_percentage=40, time_spent_delta=5)

        assert lesson.progress_status == LessonStatus.COMPLETED.value
        assert lesson.completion_percentage == 100
        assert lesson.time_spent == 5
        assert len(ledger.drain_events()) == 1

    def test_percentage_is_clamped(self, ledger) -> None:
        lesson = make_lesson()
        ledger.update_lesson_progress(lesson, completion_percentage=250)
        assert lesson.completion_percentage == 100
        assert lesson.progress_status == LessonStatus.COMPLETED.value

    def test_negative_time_is_rejected(self, ledger) -> None:
        with pytest.raises(ValidationError):
            ledger.update_lesson_progress(make_lesson(), time_spent_delta=-3)

    def test_complete_emits_event_with_stable_key(self, ledger) -> None:
        lesson = make_lesson(goal_id=uuid.uuid4())

        ledger.complete_lesson(lesson, time_spent_delta=15, rating=4)
        ledger.complete_lesson(lesson)

        first, second = ledger.drain_events()
        assert isinstance(first, LessonCompleted)
        assert first.goal_id == lesson.goal_id
        assert first.time_spent_delta == 15
        assert first.key == second.key
        assert lesson.user_rating == 4
        assert lesson.completion_percentage == 100

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, ledger, rating) -> None:
        with pytest.raises(ValidationError):
            ledger.complete_lesson(make_lesson(), rating=rating)

    def test_drain_forgets_events(self, ledger) -> None:
        ledger.complete_lesson(make_lesson())
        assert len(ledger.pending_events) == 1
        ledger.drain_events()
        assert ledger.pending_events == ()
