from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.lessons.models import LessonStatus, LessonType, SourcePlatform


if TYPE_CHECKING:
    from src.lessons.models import Lesson


class LessonSourceIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    platform: SourcePlatform = SourcePlatform.CUSTOM
    url: str | None = Field(None, max_length=500)
    video_id: str | None = Field(None, max_length=50, alias="videoId")
    duration: Any = Field(None, description="Seconds, ISO-8601 or clock notation")
    thumbnail: str | None = Field(None, max_length=500)


class LessonCreate(BaseModel):
    """Schema for creating a lesson."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    type: LessonType = LessonType.OTHER
    category: str = Field("other", min_length=1, max_length=50)
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    goal_id: UUID | None = Field(None, alias="goalId")
    source: LessonSourceIn | None = None


class LessonUpdate(BaseModel):
    """Non-progress lesson fields; progress moves through the dedicated endpoints."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    type: LessonType | None = None
    category: str | None = Field(None, min_length=1, max_length=50)
    tags: list[str] | None = None
    notes: str | None = None
    goal_id: UUID | None = Field(None, alias="goalId")


class LessonProgressUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completion_percentage: float | None = Field(None, alias="completionPercentage")
    time_spent_delta: int | None = Field(None, alias="timeSpentDelta", description="Minutes to add")


class LessonComplete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time_spent_delta: int | None = Field(None, alias="timeSpentDelta", description="Minutes to add")
    rating: int | None = None


class LessonSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    platform: str
    url: str | None = None
    video_id: str | None = Field(None, alias="videoId")
    duration: int | None = Field(None, description="Duration in seconds")
    thumbnail: str | None = None


class LessonProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: LessonStatus
    time_spent: int = Field(0, alias="timeSpent", description="Minutes")
    completion_percentage: int = Field(0, alias="completionPercentage")
    started_at: datetime | None = Field(None, alias="startedAt")
    completed_at: datetime | None = Field(None, alias="completedAt")
    last_accessed_at: datetime | None = Field(None, alias="lastAccessedAt")
    user_rating: int | None = Field(None, alias="userRating")


class LessonResponse(BaseModel):
    """Schema for lesson response."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    goal_id: UUID | None = Field(None, alias="goalId")
    title: str
    description: str | None = None
    type: LessonType
    category: str
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    source: LessonSource
    progress: LessonProgress
    version: int
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_model(cls, lesson: Lesson) -> LessonResponse:
        return cls(
            id=lesson.id,
            goal_id=lesson.goal_id,
            title=lesson.title,
            description=lesson.description,
            type=lesson.type,
            category=lesson.category,
            tags=lesson.tags or [],
            notes=lesson.notes,
            source=LessonSource(
                platform=lesson.source_platform,
                url=lesson.source_url,
                video_id=lesson.source_video_id,
                duration=lesson.source_duration,
                thumbnail=lesson.source_thumbnail,
            ),
            progress=LessonProgress(
                status=lesson.progress_status,
                time_spent=lesson.time_spent or 0,
                completion_percentage=lesson.completion_percentage or 0,
                started_at=lesson.started_at,
                completed_at=lesson.completed_at,
                last_accessed_at=lesson.last_accessed_at,
                user_rating=lesson.user_rating,
            ),
            version=lesson.version,
            created_at=lesson.created_at,
            updated_at=lesson.updated_at,
        )
