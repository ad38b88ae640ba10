"""Rule-based learning insights.

Pure functions over already-loaded lessons and goals. They never call out
and never fail, so they can always stand in when the AI analysis is
unavailable.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from src.goals.models import GoalStatus


VELOCITY_WINDOW_DAYS = 7
CONSISTENT_HABIT_LESSONS = 5
DEEP_FOCUS_MINUTES = 20
FOCUS_GOAL_LIMIT = 3
LOW_ACTIVITY_LESSONS = 3
DEFAULT_CATEGORY = "other"


@dataclass(frozen=True)
class LessonSample:
    """A recently completed lesson, reduced to what the rules read."""

    time_spent: int
    category: str | None = None


@dataclass(frozen=True)
class GoalSample:
    status: str
    progress: int


@dataclass(frozen=True)
class GoalProgressSummary:
    total: int
    completed: int
    in_progress: int
    average_progress: int


@dataclass
class RuleInsights:
    learning_velocity: int
    goal_progress: GoalProgressSummary
    time_distribution: dict[str, int] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)


def _total_minutes(lessons: Sequence[LessonSample]) -> int:
    return sum(lesson.time_spent or 0 for lesson in lessons)


def learning_velocity(lessons: Sequence[LessonSample]) -> int:
    """Average minutes per day across the weekly window."""
    if not lessons:
        return 0
    return round(_total_minutes(lessons) / VELOCITY_WINDOW_DAYS)


def goal_progress_summary(goals: Sequence[GoalSample]) -> GoalProgressSummary:
    if not goals:
        return GoalProgressSummary(total=0, completed=0, in_progress=0, average_progress=0)

    return GoalProgressSummary(
        total=len(goals),
        completed=sum(1 for g in goals if g.status == GoalStatus.COMPLETED.value),
        in_progress=sum(1 for g in goals if g.status == GoalStatus.IN_PROGRESS.value),
        average_progress=round(sum(g.progress or 0 for g in goals) / len(goals)),
    )


def time_distribution(lessons: Sequence[LessonSample]) -> dict[str, int]:
    """Minutes spent per lesson category, in order of first appearance."""
    distribution: dict[str, int] = {}
    for lesson in lessons:
        category = lesson.category or DEFAULT_CATEGORY
        distribution[category] = distribution.get(category, 0) + (lesson.time_spent or 0)
    return distribution


def recommendations(goals: Sequence[GoalSample], lessons: Sequence[LessonSample]) -> list[str]:
    items: list[str] = []

    if not lessons:
        items.append("Start with your first lesson to begin building momentum")
    elif len(lessons) < LOW_ACTIVITY_LESSONS:
        items.append("Try to complete at least one lesson daily for better progress")

    in_progress = sum(1 for g in goals if g.status == GoalStatus.IN_PROGRESS.value)
    if in_progress > FOCUS_GOAL_LIMIT:
        items.append("Consider focusing on fewer goals to improve completion rate")

    return items


def strengths(lessons: Sequence[LessonSample]) -> list[str]:
    items: list[str] = []
    if not lessons:
        return items

    if len(lessons) >= CONSISTENT_HABIT_LESSONS:
        items.append("Consistent learning habit")
    if _total_minutes(lessons) / len(lessons) >= DEEP_FOCUS_MINUTES:
        items.append("Deep focus on learning materials")

    return items


def improvements(lessons: Sequence[LessonSample], daily_goal_minutes: int) -> list[str]:
    items: list[str] = []

    if not lessons:
        items.append("Start your learning journey by completing your first lesson")

    daily_average = _total_minutes(lessons) / VELOCITY_WINDOW_DAYS
    if daily_average < daily_goal_minutes:
        items.append(f"Try to reach your daily goal of {daily_goal_minutes} minutes")

    return items


def generate_insights(
    goals: Sequence[GoalSample],
    recent_lessons: Sequence[LessonSample],
    daily_goal_minutes: int = 30,
) -> RuleInsights:
    """Build the full rule-based insight set for one user."""
    return RuleInsights(
        learning_velocity=learning_velocity(recent_lessons),
        goal_progress=goal_progress_summary(goals),
        time_distribution=time_distribution(recent_lessons),
        recommendations=recommendations(goals, recent_lessons),
        strengths=strengths(recent_lessons),
        improvements=improvements(recent_lessons, daily_goal_minutes or 30),
    )
