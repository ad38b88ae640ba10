from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from src.ai.models import ProgressAnalysis
from src.goals.models import Difficulty, GoalCategory


if TYPE_CHECKING:
    from src.insights.providers import InsightReport


class GoalMilestonesRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    category: GoalCategory = GoalCategory.OTHER
    difficulty: Difficulty = Difficulty.BEGINNER


class GoalProgressInsight(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    completed: int
    in_progress: int = Field(..., alias="inProgress")
    average_progress: int = Field(..., alias="averageProgress")


class LearningInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    learning_velocity: int = Field(..., alias="learningVelocity", description="Average minutes per day this week")
    goal_progress: GoalProgressInsight = Field(..., alias="goalProgress")
    time_distribution: dict[str, int] = Field(default_factory=dict, alias="timeDistribution")
    recommendations: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)


class InsightsResponse(BaseModel):
    """Rule-based insights plus the analysis from whichever provider answered."""

    model_config = ConfigDict(populate_by_name=True)

    insights: LearningInsights
    analysis: ProgressAnalysis
    source: str
    ai_available: bool = Field(..., alias="aiAvailable")

    @classmethod
    def from_report(cls, report: InsightReport) -> InsightsResponse:
        rules = report.insights
        goals = rules.goal_progress
        return cls(
            insights=LearningInsights(
                learning_velocity=rules.learning_velocity,
                goal_progress=GoalProgressInsight(
                    total=goals.total,
                    completed=goals.completed,
                    in_progress=goals.in_progress,
                    average_progress=goals.average_progress,
                ),
                time_distribution=rules.time_distribution,
                recommendations=rules.recommendations,
                strengths=rules.strengths,
                improvements=rules.improvements,
            ),
            analysis=report.analysis,
            source=report.source.value,
            ai_available=report.ai_available,
        )
