from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003
from enum import Enum
from uuid import UUID as UUID_TYPE

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base


class LessonStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class LessonType(str, Enum):
    VIDEO = "video"
    ARTICLE = "article"
    EXERCISE = "exercise"
    QUIZ = "quiz"
    PROJECT = "project"
    OTHER = "other"


class SourcePlatform(str, Enum):
    YOUTUBE = "youtube"
    CUSTOM = "custom"
    COURSERA = "coursera"
    UDEMY = "udemy"
    KHAN_ACADEMY = "khan_academy"
    OTHER = "other"


class Lesson(Base):
    """A unit of learning content with its own progress record."""

    __tablename__ = "lessons"
    __table_args__ = (
        Index("ix_lessons_user_status", "user_id", "progress_status"),
        Index("ix_lessons_user_completed_at", "user_id", "completed_at"),
        # One lesson per user and source video; NULL video ids stay distinct
        UniqueConstraint("user_id", "source_video_id", name="uq_lessons_user_video"),
    )

    id: Mapped[UUID_TYPE] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[UUID_TYPE] = mapped_column(Uuid, nullable=False, index=True)
    # Weak reference: the lesson outlives its goal
    goal_id: Mapped[UUID_TYPE | None] = mapped_column(
        Uuid,
        ForeignKey("goals.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="other")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Source
    source_platform: Mapped[str] = mapped_column(String(20), nullable=False, default=SourcePlatform.CUSTOM.value)
    source_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    source_video_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # Duration in seconds
    source_thumbnail: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Progress
    progress_status: Mapped[str] = mapped_column(String(20), nullable=False, default=LessonStatus.NOT_STARTED.value)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Minutes
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_accessed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}  # noqa: RUF012

    def __repr__(self) -> str:
        """Return string representation of the lesson."""
        return f"<Lesson(id={self.id}, title={self.title!r}, status={self.progress_status})>"
