"""Pydantic models for structured AI responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_text_list(values: Any) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(item).strip() for item in values if str(item or "").strip()]


class StudySession(BaseModel):
    """One block in the weekly schedule."""

    day: str = Field(description="Day of the week")
    goal: str = Field(description="Goal title this block works towards")
    activity: str = Field(description="What to study in this block")
    minutes: int = Field(ge=0, description="Planned minutes")


class GoalTimeAllocation(BaseModel):
    goal: str = Field(description="Goal title")
    hours_per_week: float = Field(ge=0, description="Weekly hours allocated to the goal")


class StudyPlan(BaseModel):
    """Personalized weekly study plan."""

    summary: str = Field(description="Short overview of the plan")
    weekly_schedule: list[StudySession] = Field(default_factory=list)
    learning_sequence: list[str] = Field(default_factory=list, description="Recommended order of topics")
    time_allocation: list[GoalTimeAllocation] = Field(default_factory=list)
    milestones: list[str] = Field(default_factory=list, description="Suggested checkpoints")

    model_config = ConfigDict(extra="ignore")

    @field_validator("learning_sequence", "milestones", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)


class LessonRecommendation(BaseModel):
    title: str = Field(description="Lesson title")
    objective: str = Field(description="Learning objective")
    estimated_duration: int = Field(ge=0, description="Estimated duration in minutes")
    difficulty: str = Field(description="beginner, intermediate or advanced")
    reason: str = Field(description="Why this lesson is recommended")


class LessonRecommendations(BaseModel):
    """Next lessons suggested from completed lessons and open goals."""

    recommendations: list[LessonRecommendation] = Field(default_factory=list, max_length=10)


class ProgressAnalysis(BaseModel):
    """AI narrative over the user's stats and recent lessons."""

    summary: str = Field(description="Progress summary")
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list, description="Areas for improvement")
    motivation_tips: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list, description="Adjusted recommendations")

    model_config = ConfigDict(extra="ignore")

    @field_validator("strengths", "improvements", "motivation_tips", "recommendations", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)


class MilestoneSuggestion(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="")
    estimated_hours: float = Field(default=0, ge=0)
    prerequisites: list[str] = Field(default_factory=list)
    success_criteria: list[str] = Field(default_factory=list)

    @field_validator("prerequisites", "success_criteria", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)


class MilestoneSuggestions(BaseModel):
    """Five to eight progressive milestones for a goal."""

    milestones: list[MilestoneSuggestion] = Field(default_factory=list)
