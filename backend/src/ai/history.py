"""Load the learning history that AI prompts and insights are built from."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.goals.models import OWNER_STATUSES, Goal, GoalStatus
from src.lessons.models import Lesson, LessonStatus


CLOSED_GOAL_STATUSES = (*OWNER_STATUSES, GoalStatus.COMPLETED.value)


async def all_goals(session: AsyncSession, user_id: UUID) -> list[Goal]:
    result = await session.execute(select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at.desc()))
    return list(result.scalars().all())


async def open_goals(session: AsyncSession, user_id: UUID) -> list[Goal]:
    """Goals still being worked on: neither completed, paused nor cancelled."""
    result = await session.execute(
        select(Goal)
        .where(Goal.user_id == user_id, Goal.status.not_in(CLOSED_GOAL_STATUSES))
        .order_by(Goal.target_date)
    )
    return list(result.scalars().all())


async def completed_lessons(
    session: AsyncSession,
    user_id: UUID,
    since: datetime | None = None,
    limit: int | None = None,
) -> list[Lesson]:
    """Completed lessons, most recent first."""
    query = select(Lesson).where(
        Lesson.user_id == user_id,
        Lesson.progress_status == LessonStatus.COMPLETED.value,
    )
    if since is not None:
        query = query.where(Lesson.completed_at >= since)
    query = query.order_by(Lesson.completed_at.desc())
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return list(result.scalars().all())
