import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import get_settings
from src.database.session import unit_of_work
from src.goals.models import Goal, GoalCategory, GoalStatus
from src.goals.schemas import GoalResponse
from src.lessons.models import Lesson, LessonStatus
from src.lessons.schemas import LessonResponse
from src.progress.analytics import (
    AnalyticsPeriod,
    AnalyticsReport,
    CompletedLessonRecord,
    aggregate_completions,
    comparison_start,
)
from src.progress.clock import utc_now
from src.progress.stats import refresh_user_streak
from src.users.models import User
from src.users.schemas import DashboardResponse, UserProfileUpdate


logger = logging.getLogger(__name__)

DASHBOARD_RECENT_LESSONS = 10
DASHBOARD_RECENT_GOALS = 5


async def get_or_create_user(session: AsyncSession, user_id: UUID) -> User:
    """Return the caller's user row, creating it on first access.

    Must run before the caller's unit of work starts: a fresh row is
    committed on its own so that a concurrent first request can be resolved
    by re-reading it.
    """
    user = await session.get(User, user_id)
    if user is not None:
        return user

    user = User(id=user_id, daily_goal_minutes=get_settings().DEFAULT_DAILY_GOAL_MINUTES)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.debug("User %s was created by a concurrent request", user_id)
        user = await session.get(User, user_id)
        if user is None:
            raise
        return user

    logger.info("Created user record for %s", user_id)
    return user


class UserService:
    """Service for the caller's profile, stats and progress views."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_profile(self, user_id: UUID) -> User:
        return await get_or_create_user(self._session, user_id)

    async def update_profile(self, user_id: UUID, data: UserProfileUpdate) -> User:
        """
        Update profile and preference fields.

        Parameters
        ----------
        user_id : UUID
            Caller ID
        data : UserProfileUpdate
            Sections to update; unset fields are left alone

        Returns
        -------
        User
            Updated user instance

        Raises
        ------
        ConflictError
            If the user row was modified concurrently
        """
        user = await get_or_create_user(self._session, user_id)

        async with unit_of_work(self._session, "User", user_id):
            if "username" in data.model_fields_set:
                user.username = data.username
            if data.profile is not None:
                for field, value in data.profile.model_dump(exclude_unset=True).items():
                    setattr(user, field, value)
            if data.preferences is not None:
                preferences = data.preferences.model_dump(exclude_unset=True)
                notifications = preferences.pop("notifications", None)
                for field, value in preferences.items():
                    setattr(user, field, value)
                if notifications:
                    merged = dict(user.notifications or {})
                    merged.update({k: v for k, v in notifications.items() if v is not None})
                    user.notifications = merged

        logger.info("Updated profile for user %s", user_id)
        return user

    async def get_stats(self, user_id: UUID) -> User:
        """Return the user with the current streak brought up to date."""
        user = await get_or_create_user(self._session, user_id)
        async with unit_of_work(self._session, "User", user_id):
            await refresh_user_streak(self._session, user)
        return user

    async def get_dashboard(self, user_id: UUID) -> DashboardResponse:
        """
        Build the dashboard summary.

        Goal counts cover every goal of the user; the goal list shows the
        five newest. The current streak is recomputed and persisted.
        """
        user = await get_or_create_user(self._session, user_id)
        async with unit_of_work(self._session, "User", user_id):
            streak = await refresh_user_streak(self._session, user)

        goal_counts = await self._session.execute(
            select(Goal.status, func.count()).where(Goal.user_id == user_id).group_by(Goal.status)
        )
        by_status = dict(goal_counts.all())

        lesson_counts = await self._session.execute(
            select(Lesson.progress_status, func.count()).where(Lesson.user_id == user_id).group_by(Lesson.progress_status)
        )
        lessons_by_status = dict(lesson_counts.all())

        week_ago = utc_now() - timedelta(days=7)
        time_this_week = await self._session.scalar(
            select(func.coalesce(func.sum(Lesson.time_spent), 0)).where(
                Lesson.user_id == user_id,
                Lesson.progress_status == LessonStatus.COMPLETED.value,
                Lesson.completed_at >= week_ago,
            )
        )

        recent_lessons = await self._session.execute(
            select(Lesson)
            .where(Lesson.user_id == user_id)
            .order_by(Lesson.last_accessed_at.desc().nulls_last(), Lesson.created_at.desc())
            .limit(DASHBOARD_RECENT_LESSONS)
        )
        recent_goals = await self._session.execute(
            select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at.desc()).limit(DASHBOARD_RECENT_GOALS)
        )

        return DashboardResponse(
            goals=sum(by_status.values()),
            completed_goals=by_status.get(GoalStatus.COMPLETED.value, 0),
            in_progress_goals=by_status.get(GoalStatus.IN_PROGRESS.value, 0),
            total_lessons=sum(lessons_by_status.values()),
            completed_lessons=lessons_by_status.get(LessonStatus.COMPLETED.value, 0),
            total_time_spent=user.total_time_spent,
            time_this_week=int(time_this_week or 0),
            current_streak=streak.current,
            longest_streak=streak.longest,
            recent_lessons=[LessonResponse.from_model(lesson) for lesson in recent_lessons.scalars().all()],
            recent_goals=[GoalResponse.from_model(goal) for goal in recent_goals.scalars().all()],
        )

    async def get_analytics(self, user_id: UUID, period: str | None = None) -> AnalyticsReport:
        """
        Aggregate completed lessons for the requested period.

        Parameters
        ----------
        user_id : UUID
            Caller ID
        period : str, optional
            One of 24h, 7d, 30d, 90d; anything else means 7d

        Returns
        -------
        AnalyticsReport
            Day and category buckets plus the comparison with the previous window
        """
        resolved = AnalyticsPeriod.parse(period)
        now = utc_now()

        result = await self._session.execute(
            select(Lesson.id, Lesson.completed_at, Lesson.time_spent, Goal.category)
            .outerjoin(Goal, Goal.id == Lesson.goal_id)
            .where(
                Lesson.user_id == user_id,
                Lesson.progress_status == LessonStatus.COMPLETED.value,
                Lesson.completed_at >= comparison_start(resolved, now),
            )
        )
        records = [
            CompletedLessonRecord(
                lesson_id=lesson_id,
                completed_at=completed_at,
                time_spent=time_spent or 0,
                goal_category=category or GoalCategory.OTHER.value,
            )
            for lesson_id, completed_at, time_spent, category in result.all()
        ]
        return aggregate_completions(records, resolved, now)
