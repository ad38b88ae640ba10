from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.goals.schemas import GoalResponse
from src.lessons.schemas import LessonResponse


if TYPE_CHECKING:
    from src.progress.analytics import AnalyticsReport
    from src.users.models import User


LearningStyle = Literal["visual", "auditory", "kinesthetic", "reading"]
SkillLevel = Literal["beginner", "intermediate", "advanced"]
Theme = Literal["light", "dark", "auto"]


class NotificationSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: bool = True
    push: bool = True
    study_reminders: bool = Field(True, alias="studyReminders")


class NotificationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    email: bool | None = None
    push: bool | None = None
    study_reminders: bool | None = Field(None, alias="studyReminders")


class ProfileFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    bio: str | None = None
    learning_preferences: list[LearningStyle] = Field(default_factory=list, alias="learningPreferences")
    skill_level: SkillLevel = Field("beginner", alias="skillLevel")


class ProfileFieldsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    first_name: str | None = Field(None, max_length=100, alias="firstName")
    last_name: str | None = Field(None, max_length=100, alias="lastName")
    bio: str | None = Field(None, max_length=500)
    learning_preferences: list[LearningStyle] | None = Field(None, alias="learningPreferences")
    skill_level: SkillLevel | None = Field(None, alias="skillLevel")


class PreferenceFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    daily_goal_minutes: int = Field(30, alias="dailyGoalMinutes")
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    theme: Theme = "light"


class PreferenceFieldsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    daily_goal_minutes: int | None = Field(None, ge=1, le=1440, alias="dailyGoalMinutes")
    notifications: NotificationUpdate | None = None
    theme: Theme | None = None


class UserStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_lessons_completed: int = Field(0, alias="totalLessonsCompleted")
    total_time_spent: int = Field(0, alias="totalTimeSpent", description="Minutes")
    current_streak: int = Field(0, alias="currentStreak")
    longest_streak: int = Field(0, alias="longestStreak")
    total_goals_achieved: int = Field(0, alias="totalGoalsAchieved")

    @classmethod
    def from_model(cls, user: User) -> UserStats:
        return cls(
            total_lessons_completed=user.total_lessons_completed,
            total_time_spent=user.total_time_spent,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            total_goals_achieved=user.total_goals_achieved,
        )


class UserProfileResponse(BaseModel):
    """Schema for the caller's profile, preferences and stats."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    username: str | None = None
    profile: ProfileFields
    preferences: PreferenceFields
    stats: UserStats
    version: int
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_model(cls, user: User) -> UserProfileResponse:
        notifications = user.notifications or {}
        return cls(
            id=user.id,
            username=user.username,
            profile=ProfileFields(
                first_name=user.first_name,
                last_name=user.last_name,
                bio=user.bio,
                learning_preferences=user.learning_preferences or [],
                skill_level=user.skill_level,
            ),
            preferences=PreferenceFields(
                daily_goal_minutes=user.daily_goal_minutes,
                notifications=NotificationSettings(**notifications),
                theme=user.theme,
            ),
            stats=UserStats.from_model(user),
            version=user.version,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserProfileUpdate(BaseModel):
    """Schema for updating the caller's profile; every section is optional."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    username: str | None = Field(None, min_length=3, max_length=50)
    profile: ProfileFieldsUpdate | None = None
    preferences: PreferenceFieldsUpdate | None = None


class DashboardResponse(BaseModel):
    """Headline counts plus the most recent lessons and goals."""

    model_config = ConfigDict(populate_by_name=True)

    goals: int
    completed_goals: int = Field(..., alias="completedGoals")
    in_progress_goals: int = Field(..., alias="inProgressGoals")
    total_lessons: int = Field(..., alias="totalLessons")
    completed_lessons: int = Field(..., alias="completedLessons")
    total_time_spent: int = Field(..., alias="totalTimeSpent")
    time_this_week: int = Field(..., alias="timeThisWeek")
    current_streak: int = Field(..., alias="currentStreak")
    longest_streak: int = Field(..., alias="longestStreak")
    recent_lessons: list[LessonResponse] = Field(default_factory=list, alias="recentLessons")
    recent_goals: list[GoalResponse] = Field(default_factory=list, alias="recentGoals")


class BucketResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lessons: int = 0
    time_spent: int = Field(0, alias="timeSpent")


class ComparisonResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    previous_period_lessons: int = Field(..., alias="previousPeriodLessons")
    previous_period_time: int = Field(..., alias="previousPeriodTime")
    lessons_change_pct: float | None = Field(None, alias="lessonsChangePct")
    time_change_pct: float | None = Field(None, alias="timeChangePct")


class AnalyticsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: str
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    total_lessons: int = Field(..., alias="totalLessons")
    total_time: int = Field(..., alias="totalTime")
    daily_progress: dict[str, BucketResponse] = Field(default_factory=dict, alias="dailyProgress")
    category_breakdown: dict[str, BucketResponse] = Field(default_factory=dict, alias="categoryBreakdown")
    comparison: ComparisonResponse

    @classmethod
    def from_report(cls, report: AnalyticsReport) -> AnalyticsResponse:
        def buckets(source: dict) -> dict[str, BucketResponse]:
            return {key: BucketResponse(lessons=b.lessons, time_spent=b.time_spent) for key, b in source.items()}

        comparison = report.comparison
        return cls(
            period=report.period.value,
            start_date=report.start,
            end_date=report.end,
            total_lessons=report.total_lessons,
            total_time=report.total_time,
            daily_progress=buckets(report.daily_progress),
            category_breakdown=buckets(report.category_breakdown),
            comparison=ComparisonResponse(
                previous_period_lessons=comparison.previous_period_lessons,
                previous_period_time=comparison.previous_period_time,
                lessons_change_pct=comparison.lessons_change_pct,
                time_change_pct=comparison.time_change_pct,
            ),
        )
