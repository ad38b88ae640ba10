from __future__ import annotations

import uuid
from datetime import date, datetime  # noqa: TC003
from enum import Enum
from uuid import UUID as UUID_TYPE

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base


class GoalStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class GoalCategory(str, Enum):
    PROGRAMMING = "programming"
    LANGUAGE = "language"
    MATHEMATICS = "mathematics"
    SCIENCE = "science"
    BUSINESS = "business"
    CREATIVE = "creative"
    OTHER = "other"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class GoalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Statuses the owner sets explicitly; every other status is derived from progress.
OWNER_STATUSES = frozenset({GoalStatus.PAUSED.value, GoalStatus.CANCELLED.value})


class Goal(Base):
    """A learning objective with a target date and an ordered milestone breakdown."""

    __tablename__ = "goals"
    __table_args__ = (
        Index("ix_goals_user_status", "user_id", "status"),
        Index("ix_goals_user_target_date", "user_id", "target_date"),
        Index("ix_goals_category_difficulty", "category", "difficulty"),
    )

    id: Mapped[UUID_TYPE] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[UUID_TYPE] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default=Difficulty.BEGINNER.value)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=GoalStatus.NOT_STARTED.value)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default=GoalPriority.MEDIUM.value)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Metrics
    estimated_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    actual_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    lessons_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Optimistic lock, bumped on every UPDATE of the row
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

    milestones: Mapped[list[GoalMilestone]] = relationship(
        "GoalMilestone",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="GoalMilestone.order",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}  # noqa: RUF012

    def __repr__(self) -> str:
        """Return string representation of the goal."""
        return f"<Goal(id={self.id}, title={self.title!r}, status={self.status}, progress={self.progress})>"


class GoalMilestone(Base):
    """An ordered, binary-completable step of a goal."""

    __tablename__ = "goal_milestones"
    __table_args__ = (UniqueConstraint("goal_id", "position", name="uq_goal_milestone_position"),)

    id: Mapped[UUID_TYPE] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    goal_id: Mapped[UUID_TYPE] = mapped_column(
        Uuid,
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    order: Mapped[int] = mapped_column("position", Integer, nullable=False)

    goal: Mapped[Goal] = relationship("Goal", back_populates="milestones")

    def __repr__(self) -> str:
        """Return string representation of the milestone."""
        return f"<GoalMilestone(order={self.order}, title={self.title!r}, completed={self.completed})>"
