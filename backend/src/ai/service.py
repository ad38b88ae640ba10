"""Centralized AI service: every LLM-backed operation goes through here.

Callers load whatever entities they need and pass them in; this layer only
builds prompts, calls the model and validates the reply. Any runtime failure
surfaces as CollaboratorUnavailableError so routes can report it as a labeled
503 without touching persisted state.
"""

import logging
from collections.abc import Sequence
from typing import TypeVar

from pydantic import BaseModel

from src.ai.client import LLMClient
from src.ai.errors import AIRuntimeError
from src.ai.models import LessonRecommendations, MilestoneSuggestions, ProgressAnalysis, StudyPlan
from src.ai.prompts import (
    GOAL_MILESTONES_PROMPT,
    LESSON_RECOMMENDATIONS_PROMPT,
    PROGRESS_ANALYSIS_PROMPT,
    STUDY_PLAN_PROMPT,
    SYSTEM_PROMPT,
)
from src.exceptions import CollaboratorUnavailableError
from src.goals.models import Goal
from src.lessons.models import Lesson
from src.users.models import User


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

AI_SERVICE_NAME = "AI"


def _join(values: Sequence[str], empty: str = "none") -> str:
    return ", ".join(values) if values else empty


class AIService:
    """ALL AI operations go through here."""

    def __init__(self, llm_client: LLMClient | None = None) -> None:
        self._llm_client = llm_client or LLMClient()

    async def _structured(self, prompt: str, response_model: type[ModelT], user: User | None = None) -> ModelT:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            return await self._llm_client.get_completion(
                messages,
                response_model=response_model,
                user_id=user.id if user is not None else None,
            )
        except AIRuntimeError as e:
            logger.warning(f"{response_model.__name__} generation failed ({e.category.value}): {e}")
            raise CollaboratorUnavailableError(AI_SERVICE_NAME, e.category.value) from e

    async def generate_study_plan(self, user: User, goals: Sequence[Goal]) -> StudyPlan:
        """Weekly plan for the user's open goals."""
        goal_lines = "\n".join(f"- {g.title} ({g.category}, {g.difficulty})" for g in goals) or "- No open goals yet"
        prompt = STUDY_PLAN_PROMPT.format(
            skill_level=user.skill_level,
            learning_preferences=_join(user.learning_preferences or []),
            daily_goal_minutes=user.daily_goal_minutes,
            goals=goal_lines,
        )
        return await self._structured(prompt, StudyPlan, user)

    async def recommend_next_lessons(
        self,
        completed_lessons: Sequence[Lesson],
        goals: Sequence[Goal],
        user: User,
    ) -> LessonRecommendations:
        prompt = LESSON_RECOMMENDATIONS_PROMPT.format(
            completed_lessons=_join([lesson.title for lesson in completed_lessons]),
            goals=_join([goal.title for goal in goals]),
            learning_preferences=_join(user.learning_preferences or []),
        )
        return await self._structured(prompt, LessonRecommendations, user)

    async def analyze_learning_progress(self, user: User, recent_lessons: Sequence[Lesson]) -> ProgressAnalysis:
        """Narrative analysis of the user's counters and recent lessons."""
        prompt = PROGRESS_ANALYSIS_PROMPT.format(
            total_lessons_completed=user.total_lessons_completed,
            total_time_spent=user.total_time_spent,
            current_streak=user.current_streak,
            total_goals_achieved=user.total_goals_achieved,
            recent_lessons=_join([f"{lesson.title} ({lesson.time_spent}min)" for lesson in recent_lessons]),
        )
        return await self._structured(prompt, ProgressAnalysis, user)

    async def suggest_goal_milestones(
        self,
        title: str,
        description: str | None,
        category: str,
        difficulty: str,
    ) -> MilestoneSuggestions:
        prompt = GOAL_MILESTONES_PROMPT.format(
            title=title,
            description=description or "",
            category=category,
            difficulty=difficulty,
        )
        return await self._structured(prompt, MilestoneSuggestions)
