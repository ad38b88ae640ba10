import uuid
from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import func, select

from src.goals.models import Goal
from src.lessons.models import Lesson, LessonStatus
from src.progress.events import GoalAchieved, LessonCompleted
from src.progress.ledger import ProgressLedger
from src.progress.stats import StatsUpdater, apply_ledger_events, refresh_user_streak
from src.users.models import AppliedStatsEvent, User


@pytest.fixture
async def user(db_session) -> User:
    user = User(id=uuid.uuid4())
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def goal(db_session, user) -> Goal:
    goal = Goal(
        id=uuid.uuid4(),
        user_id=user.id,
        title="Learn SQL",
        category="programming",
        target_date=date(2030, 1, 1),
    )
    db_session.add(goal)
    await db_session.commit()
    return goal


def completed_event(user: User, goal_id: uuid.UUID | None = None, minutes: int = 30) -> LessonCompleted:
    return LessonCompleted(
        lesson_id=uuid.uuid4(),
        user_id=user.id,
        goal_id=goal_id,
        completed_at=datetime(2026, 3, 10, 9, tzinfo=UTC),
        time_spent_delta=minutes,
    )


class TestStatsUpdater:
    @pytest.mark.asyncio
    async def test_lesson_completion_updates_user_and_goal(self, db_session, user, goal) -> None:
        applied = await StatsUpdater(db_session).apply(user, [completed_event(user, goal.id, minutes=90)])
        await db_session.commit()

        assert applied == 1
        assert user.total_lessons_completed == 1
        assert user.total_time_spent == 90
        assert goal.lessons_completed == 1
        assert goal.actual_hours == 1.5

    @pytest.mark.asyncio
    async def test_same_event_is_applied_once(self, db_session, user) -> None:
        event = completed_event(user)
        updater = StatsUpdater(db_session)

        assert await updater.apply(user, [event, event]) == 1
        await db_session.commit()
        assert await updater.apply(user, [event]) == 0
        await db_session.commit()

        assert user.total_lessons_completed == 1
        count = await db_session.scalar(select(func.count()).select_from(AppliedStatsEvent))
        assert count == 1

    @pytest.mark.asyncio
    async def test_goal_achieved_counts_once_per_goal(self, db_session, user, goal) -> None:
        achieved = GoalAchieved(goal_id=goal.id, user_id=user.id, achieved_at=datetime.now(UTC))
        again = GoalAchieved(goal_id=goal.id, user_id=user.id, achieved_at=datetime.now(UTC) + timedelta(days=1))

        await StatsUpdater(db_session).apply(user, [achieved])
        await StatsUpdater(db_session).apply(user, [again])
        await db_session.commit()

        assert user.total_goals_achieved == 1

    @pytest.mark.asyncio
    async def test_events_of_other_users_are_ignored(self, db_session, user) -> None:
        stranger = User(id=uuid.uuid4())
        applied = await StatsUpdater(db_session).apply(user, [completed_event(stranger)])
        assert applied == 0
        assert user.total_lessons_completed == 0

    @pytest.mark.asyncio
    async def test_rolled_back_unit_forgets_the_key(self, db_session, user) -> None:
        event = completed_event(user)

        await StatsUpdater(db_session).apply(user, [event])
        await db_session.rollback()
        await db_session.refresh(user)

        assert user.total_lessons_completed == 0
        assert await StatsUpdater(db_session).apply(user, [event]) == 1


class TestStreakRefresh:
    @pytest.mark.asyncio
    async def test_streak_is_derived_from_completed_lessons(self, db_session, user) -> None:
        today = date(2026, 3, 10)
        for offset in (0, 1, 2, 5):
            day = today - timedelta(days=offset)
            db_session.add(
                Lesson(
                    id=uuid.uuid4(),
                    user_id=user.id,
                    title=f"Lesson {offset}",
                    type="article",
                    progress_status=LessonStatus.COMPLETED.value,
                    completion_percentage=100,
                    completed_at=datetime(day.year, day.month, day.day, 10, tzinfo=UTC),
                )
            )
        await db_session.commit()

        summary = await refresh_user_streak(db_session, user, today=today)

        assert summary.current == 3
        assert user.current_streak == 3
        assert user.longest_streak == 3

        later = await refresh_user_streak(db_session, user, today=today + timedelta(days=4))
        assert later.current == 0
        assert user.longest_streak == 3

    @pytest.mark.asyncio
    async def test_apply_ledger_events_drains_and_refreshes(self, db_session, user) -> None:
        lesson = Lesson(
            id=uuid.uuid4(),
            user_id=user.id,
            title="Joins",
            type="article",
            progress_status=LessonStatus.NOT_STARTED.value,
            time_spent=0,
            completion_percentage=0,
        )
        db_session.add(lesson)
        ledger = ProgressLedger()

        ledger.complete_lesson(lesson, time_spent_delta=25)
        applied = await apply_ledger_events(db_session, user, ledger)
        await db_session.commit()

        assert applied == 1
        assert ledger.pending_events == ()
        assert user.total_time_spent == 25
        assert user.current_streak == 1
