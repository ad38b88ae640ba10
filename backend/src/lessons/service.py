import logging
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import AuthContext
from src.database.session import unit_of_work
from src.exceptions import AlreadyExistsError, ValidationError
from src.goals.models import Goal
from src.lessons.models import Lesson, LessonStatus, SourcePlatform
from src.lessons.schemas import LessonComplete, LessonCreate, LessonProgressUpdate, LessonUpdate
from src.progress.clock import utc_now
from src.progress.ledger import ProgressLedger
from src.progress.stats import apply_ledger_events
from src.users.service import get_or_create_user
from src.videos.youtube import normalize_duration


logger = logging.getLogger(__name__)

DEFAULT_LESSON_LIMIT = 50

LESSON_SORT_COLUMNS = {
    "createdAt": Lesson.created_at,
    "updatedAt": Lesson.updated_at,
    "lastAccessedAt": Lesson.last_accessed_at,
    "completedAt": Lesson.completed_at,
    "title": Lesson.title,
}


async def find_video_lesson(session: AsyncSession, user_id: UUID, video_id: str) -> UUID | None:
    """Return the id of the caller's lesson for ``video_id``, if any."""
    return await session.scalar(
        select(Lesson.id).where(
            Lesson.user_id == user_id,
            Lesson.source_video_id == video_id,
        )
    )


async def add_lesson(session: AsyncSession, lesson: Lesson) -> Lesson:
    """Insert a new lesson and commit it.

    Raises
    ------
    AlreadyExistsError
        If the owner already has a lesson for the same source video, including
        one committed concurrently between the check and the insert
    """
    user_id, video_id = lesson.user_id, lesson.source_video_id
    if video_id is not None:
        existing = await find_video_lesson(session, user_id, video_id)
        if existing is not None:
            msg = "This video is already saved as a lesson"
            raise AlreadyExistsError(msg, existing_id=existing)

    try:
        async with unit_of_work(session, "Lesson", lesson.id):
            session.add(lesson)
    except IntegrityError as e:
        existing = await find_video_lesson(session, user_id, video_id) if video_id is not None else None
        if existing is None:
            raise
        logger.info(f"Concurrent save of video {video_id} for user {user_id}")
        msg = "This video is already saved as a lesson"
        raise AlreadyExistsError(msg, existing_id=existing) from e

    return lesson


class LessonService:
    """Owner-scoped lesson operations.

    Progress changes go through the ledger; a completion is folded into the
    user's stats in the same commit as the lesson itself.
    """

    def __init__(self, auth: AuthContext) -> None:
        self._auth = auth
        self._session = auth.session

    async def list_lessons(
        self,
        status: LessonStatus | None = None,
        goal_id: UUID | None = None,
        category: str | None = None,
        sort: str = "createdAt",
        limit: int = DEFAULT_LESSON_LIMIT,
    ) -> list[Lesson]:
        column = LESSON_SORT_COLUMNS.get(sort)
        if column is None:
            msg = f"Unsupported sort field: {sort}. Use one of: {', '.join(LESSON_SORT_COLUMNS)}"
            raise ValidationError(msg)

        query = select(Lesson).where(Lesson.user_id == self._auth.user_id)
        if status is not None:
            query = query.where(Lesson.progress_status == status.value)
        if goal_id is not None:
            query = query.where(Lesson.goal_id == goal_id)
        if category:
            query = query.where(Lesson.category == category)

        result = await self._session.execute(query.order_by(column.desc().nulls_last(), Lesson.id).limit(limit))
        return list(result.scalars().all())

    async def create_lesson(self, data: LessonCreate) -> Lesson:
        if data.goal_id is not None:
            await self._auth.get_or_404(Goal, data.goal_id, "Goal")

        source = data.source
        lesson = Lesson(
            id=uuid4(),
            user_id=self._auth.user_id,
            goal_id=data.goal_id,
            title=data.title,
            description=data.description,
            type=data.type.value,
            category=data.category,
            tags=data.tags,
            notes=data.notes,
            source_platform=source.platform.value if source else SourcePlatform.CUSTOM.value,
            source_url=source.url if source else None,
            source_video_id=source.video_id if source else None,
            source_duration=normalize_duration(source.duration) if source else None,
            source_thumbnail=source.thumbnail if source else None,
            progress_status=LessonStatus.NOT_STARTED.value,
            time_spent=0,
            completion_percentage=0,
        )

        await add_lesson(self._session, lesson)

        logger.info(f"Created lesson {lesson.id} for user {self._auth.user_id}")
        return lesson

    async def get_lesson(self, lesson_id: UUID) -> Lesson:
        """Fetch a lesson and record the access."""
        lesson = await self._auth.get_or_404(Lesson, lesson_id, "Lesson")
        async with unit_of_work(self._session, "Lesson", lesson_id):
            lesson.last_accessed_at = utc_now()
        return lesson

    async def update_lesson(self, lesson_id: UUID, data: LessonUpdate) -> Lesson:
        """Update descriptive fields; progress fields are not accepted here."""
        lesson = await self._auth.get_or_404(Lesson, lesson_id, "Lesson")
        updates = data.model_dump(exclude_unset=True)

        if updates.get("goal_id") is not None:
            await self._auth.get_or_404(Goal, updates["goal_id"], "Goal")

        async with unit_of_work(self._session, "Lesson", lesson_id):
            for field, value in updates.items():
                if value is None and field not in {"description", "notes", "goal_id"}:
                    continue
                if field == "type":
                    value = value.value
                setattr(lesson, field, value)
        return lesson

    async def delete_lesson(self, lesson_id: UUID) -> None:
        """Hard-delete a lesson; counters already folded into stats are kept."""
        lesson = await self._auth.get_or_404(Lesson, lesson_id, "Lesson")
        async with unit_of_work(self._session, "Lesson", lesson_id):
            await self._session.delete(lesson)
        logger.info(f"Deleted lesson {lesson_id}")

    async def start_lesson(self, lesson_id: UUID) -> Lesson:
        lesson = await self._auth.get_or_404(Lesson, lesson_id, "Lesson")
        async with unit_of_work(self._session, "Lesson", lesson_id):
            ProgressLedger().start_lesson(lesson)
        return lesson

    async def update_progress(self, lesson_id: UUID, data: LessonProgressUpdate) -> Lesson:
        """Record partial progress; reaching 100% completes the lesson once."""
        user = await get_or_create_user(self._session, self._auth.user_id)
        lesson = await self._auth.get_or_404(Lesson, lesson_id, "Lesson")
        ledger = ProgressLedger()

        async with unit_of_work(self._session, "Lesson", lesson_id):
            ledger.update_lesson_progress(
                lesson,
                completion_percentage=data.completion_percentage,
                time_spent_delta=data.time_spent_delta,
            )
            await apply_ledger_events(self._session, user, ledger)
        return lesson

    async def complete_lesson(self, lesson_id: UUID, data: LessonComplete) -> Lesson:
        """Mark a lesson completed; repeating the call never double-counts."""
        user = await get_or_create_user(self._session, self._auth.user_id)
        lesson = await self._auth.get_or_404(Lesson, lesson_id, "Lesson")
        ledger = ProgressLedger()

        async with unit_of_work(self._session, "Lesson", lesson_id):
            ledger.complete_lesson(lesson, time_spent_delta=data.time_spent_delta, rating=data.rating)
            applied = await apply_ledger_events(self._session, user, ledger)

        if applied:
            logger.info(f"Lesson {lesson_id} completed by user {user.id}")
        return lesson
