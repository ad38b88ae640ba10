"""Video features that combine the YouTube catalog with the caller's lessons."""

import logging
from uuid import uuid4

from sqlalchemy import select

from src.auth import AuthContext
from src.goals.models import Goal
from src.lessons.models import Lesson, LessonStatus, LessonType, SourcePlatform
from src.lessons.service import add_lesson

from .schemas import SaveVideoAsLesson, VideoSummary
from .youtube import WATCH_URL, YouTubeClient, normalize_duration


logger = logging.getLogger(__name__)

RECENT_LESSONS_FOR_RECOMMENDATIONS = 5
DEFAULT_RECOMMENDATION_QUERY = "programming tutorial"
MIN_TERM_LENGTH = 4
MAX_QUERY_TERMS = 3


def build_recommendation_query(titles: list[str], category: str | None = None) -> str:
    """Search query from the first few meaningful words of recent lesson titles."""
    words = [word for title in titles for word in title.split() if len(word) >= MIN_TERM_LENGTH]
    query = " ".join(words[:MAX_QUERY_TERMS]) or DEFAULT_RECOMMENDATION_QUERY
    if category:
        query = f"{query} {category}"
    return query


class VideoService:
    def __init__(self, auth: AuthContext, youtube: YouTubeClient) -> None:
        self._auth = auth
        self._session = auth.session
        self._youtube = youtube

    async def save_as_lesson(self, data: SaveVideoAsLesson) -> Lesson:
        """
        Save a catalog video as a lesson of the caller.

        Raises
        ------
        ResourceNotFoundError
            If the goal does not exist or belongs to someone else
        AlreadyExistsError
            If the caller already saved this video
        """
        if data.goal_id is not None:
            await self._auth.get_or_404(Goal, data.goal_id, "Goal")

        lesson = Lesson(
            id=uuid4(),
            user_id=self._auth.user_id,
            goal_id=data.goal_id,
            title=data.title,
            description=data.description or "",
            type=LessonType.VIDEO.value,
            category=data.category or "other",
            tags=data.tags,
            source_platform=SourcePlatform.YOUTUBE.value,
            source_url=WATCH_URL.format(video_id=data.video_id),
            source_video_id=data.video_id,
            source_duration=normalize_duration(data.duration),
            source_thumbnail=data.thumbnail,
            progress_status=LessonStatus.NOT_STARTED.value,
            time_spent=0,
            completion_percentage=0,
        )

        await add_lesson(self._session, lesson)

        logger.info(f"Saved video {data.video_id} as lesson {lesson.id}")
        return lesson

    async def recommendations(self, category: str | None = None, limit: int = 10) -> list[VideoSummary]:
        """Search videos related to the caller's recent YouTube lessons, skipping saved ones."""
        recent = await self._session.execute(
            select(Lesson.title)
            .where(
                Lesson.user_id == self._auth.user_id,
                Lesson.source_platform == SourcePlatform.YOUTUBE.value,
            )
            .order_by(Lesson.created_at.desc())
            .limit(RECENT_LESSONS_FOR_RECOMMENDATIONS)
        )
        query = build_recommendation_query(list(recent.scalars().all()), category)

        saved = await self._session.execute(
            select(Lesson.source_video_id).where(
                Lesson.user_id == self._auth.user_id,
                Lesson.source_video_id.is_not(None),
            )
        )
        saved_ids = set(saved.scalars().all())

        videos = await self._youtube.search_videos(query, max_results=limit)
        return [video for video in videos if video.video_id not in saved_ids]
