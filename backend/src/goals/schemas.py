from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.goals.models import Difficulty, GoalCategory, GoalPriority, GoalStatus


if TYPE_CHECKING:
    from src.goals.models import Goal


class MilestoneCreate(BaseModel):
    """Milestone supplied when creating a goal or appending to one."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=500)
    completed: bool = False


class MilestoneUpdate(BaseModel):
    """Partial milestone patch; unknown fields are rejected."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=500)
    completed: bool | None = None
    order: int | None = Field(None, ge=0)


class MilestoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    title: str
    description: str | None = None
    completed: bool
    completed_at: datetime | None = Field(None, alias="completedAt")
    order: int


class GoalMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    estimated_hours: float = Field(0.0, alias="estimatedHours")
    actual_hours: float = Field(0.0, alias="actualHours")
    lessons_required: int = Field(0, alias="lessonsRequired")
    lessons_completed: int = Field(0, alias="lessonsCompleted")


class GoalCreate(BaseModel):
    """Schema for creating a goal."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    category: GoalCategory
    difficulty: Difficulty = Difficulty.BEGINNER
    target_date: date = Field(..., alias="targetDate")
    priority: GoalPriority = GoalPriority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    estimated_hours: float = Field(0.0, ge=0, alias="estimatedHours")
    lessons_required: int = Field(0, ge=0, alias="lessonsRequired")
    milestones: list[MilestoneCreate] = Field(default_factory=list)
    suggest_milestones: bool = Field(
        False,
        alias="suggestMilestones",
        description="Ask the AI assistant for milestones when none are given",
    )


class GoalUpdate(BaseModel):
    """Schema for updating goal fields; progress has its own endpoint."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    category: GoalCategory | None = None
    difficulty: Difficulty | None = None
    target_date: date | None = Field(None, alias="targetDate")
    priority: GoalPriority | None = None
    tags: list[str] | None = None
    estimated_hours: float | None = Field(None, ge=0, alias="estimatedHours")
    lessons_required: int | None = Field(None, ge=0, alias="lessonsRequired")
    status: GoalStatus | None = Field(
        None,
        description="paused/cancelled park the goal; any other value resumes it from its progress",
    )


class GoalProgressUpdate(BaseModel):
    progress: int


class GoalResponse(BaseModel):
    """Schema for goal response."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    title: str
    description: str | None = None
    category: GoalCategory
    difficulty: Difficulty
    target_date: date = Field(..., alias="targetDate")
    status: GoalStatus
    progress: int
    priority: GoalPriority
    tags: list[str] = Field(default_factory=list)
    milestones: list[MilestoneResponse] = Field(default_factory=list)
    metrics: GoalMetrics
    version: int
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_model(cls, goal: Goal) -> GoalResponse:
        return cls(
            id=goal.id,
            title=goal.title,
            description=goal.description,
            category=goal.category,
            difficulty=goal.difficulty,
            target_date=goal.target_date,
            status=goal.status,
            progress=goal.progress,
            priority=goal.priority,
            tags=goal.tags or [],
            milestones=[MilestoneResponse.model_validate(m) for m in goal.milestones],
            metrics=GoalMetrics(
                estimated_hours=goal.estimated_hours,
                actual_hours=goal.actual_hours,
                lessons_required=goal.lessons_required,
                lessons_completed=goal.lessons_completed,
            ),
            version=goal.version,
            created_at=goal.created_at,
            updated_at=goal.updated_at,
        )


class GoalSuggestion(BaseModel):
    """Catalog goal the user has not created yet."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    category: GoalCategory
    difficulty: Difficulty
    estimated_hours: float = Field(..., alias="estimatedHours")
