"""Lesson API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from src.auth import CurrentAuth

from .models import LessonStatus
from .schemas import LessonComplete, LessonCreate, LessonProgressUpdate, LessonResponse, LessonUpdate
from .service import DEFAULT_LESSON_LIMIT, LessonService


router = APIRouter(prefix="/api/v1/lessons", tags=["lessons"])


@router.get("")
async def list_lessons(
    auth: CurrentAuth,
    status_filter: LessonStatus | None = Query(None, alias="status"),
    goal_id: UUID | None = Query(None, alias="goalId"),
    category: str | None = None,
    sort: str = Query("createdAt", description="createdAt, updatedAt, lastAccessedAt, completedAt or title"),
    limit: int = Query(DEFAULT_LESSON_LIMIT, ge=1, le=100),
) -> list[LessonResponse]:
    """List the caller's lessons."""
    lessons = await LessonService(auth).list_lessons(
        status=status_filter,
        goal_id=goal_id,
        category=category,
        sort=sort,
        limit=limit,
    )
    return [LessonResponse.from_model(lesson) for lesson in lessons]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lesson(data: LessonCreate, auth: CurrentAuth) -> LessonResponse:
    lesson = await LessonService(auth).create_lesson(data)
    return LessonResponse.from_model(lesson)


@router.get("/{lesson_id}")
async def get_lesson(lesson_id: UUID, auth: CurrentAuth) -> LessonResponse:
    """Retrieve a lesson and refresh its last-accessed time."""
    lesson = await LessonService(auth).get_lesson(lesson_id)
    return LessonResponse.from_model(lesson)


@router.put("/{lesson_id}")
async def update_lesson(lesson_id: UUID, data: LessonUpdate, auth: CurrentAuth) -> LessonResponse:
    lesson = await LessonService(auth).update_lesson(lesson_id, data)
    return LessonResponse.from_model(lesson)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(lesson_id: UUID, auth: CurrentAuth) -> None:
    await LessonService(auth).delete_lesson(lesson_id)


@router.patch("/{lesson_id}/start")
async def start_lesson(lesson_id: UUID, auth: CurrentAuth) -> LessonResponse:
    lesson = await LessonService(auth).start_lesson(lesson_id)
    return LessonResponse.from_model(lesson)


@router.patch("/{lesson_id}/complete")
async def complete_lesson(
    lesson_id: UUID,
    auth: CurrentAuth,
    data: LessonComplete | None = Body(None),
) -> LessonResponse:
    """Mark a lesson completed, optionally adding time and a rating."""
    lesson = await LessonService(auth).complete_lesson(lesson_id, data or LessonComplete())
    return LessonResponse.from_model(lesson)


@router.patch("/{lesson_id}/progress")
async def update_lesson_progress(lesson_id: UUID, data: LessonProgressUpdate, auth: CurrentAuth) -> LessonResponse:
    """Record partial progress; 100% completes the lesson."""
    lesson = await LessonService(auth).update_progress(lesson_id, data)
    return LessonResponse.from_model(lesson)
