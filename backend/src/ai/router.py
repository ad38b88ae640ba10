"""AI-assisted planning and insight endpoints.

Every call here is read-only with respect to progress: history is loaded,
the model is asked, and the answer is returned without touching the ledger.
"""

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.ai.history import all_goals, completed_lessons, open_goals
from src.ai.models import LessonRecommendations, MilestoneSuggestions, ProgressAnalysis, StudyPlan
from src.ai.schemas import GoalMilestonesRequest, InsightsResponse
from src.ai.service import AIService
from src.auth import CurrentAuth
from src.insights.providers import AIInsightProvider, FallbackInsightProvider, InsightRequest, get_insight_breaker
from src.middleware.security import ai_rate_limit
from src.progress.clock import utc_now
from src.users.service import get_or_create_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ai", tags=["ai"])

RECENT_COMPLETED_LESSONS = 10
PROGRESS_ANALYSIS_DAYS = 30
INSIGHT_WINDOW_DAYS = 7


def get_ai_service() -> AIService:
    return AIService()


AI = Annotated[AIService, Depends(get_ai_service)]


@router.post("/study-plan")
@ai_rate_limit
async def create_study_plan(
    request: Request,  # Required for rate limiting decorator
    auth: CurrentAuth,
    ai_service: AI,
) -> StudyPlan:
    """Generate a weekly study plan for the caller's open goals."""
    user = await get_or_create_user(auth.session, auth.user_id)
    goals = await open_goals(auth.session, auth.user_id)
    return await ai_service.generate_study_plan(user, goals)


@router.get("/lesson-recommendations")
@ai_rate_limit
async def get_lesson_recommendations(
    request: Request,  # Required for rate limiting decorator
    auth: CurrentAuth,
    ai_service: AI,
) -> LessonRecommendations:
    """Recommend next lessons from recent completions and open goals."""
    user = await get_or_create_user(auth.session, auth.user_id)
    lessons = await completed_lessons(auth.session, auth.user_id, limit=RECENT_COMPLETED_LESSONS)
    goals = await open_goals(auth.session, auth.user_id)
    return await ai_service.recommend_next_lessons(lessons, goals, user)


@router.get("/progress-analysis")
@ai_rate_limit
async def get_progress_analysis(
    request: Request,  # Required for rate limiting decorator
    auth: CurrentAuth,
    ai_service: AI,
) -> ProgressAnalysis:
    """Analyze the last month of completed lessons."""
    user = await get_or_create_user(auth.session, auth.user_id)
    since = utc_now() - timedelta(days=PROGRESS_ANALYSIS_DAYS)
    lessons = await completed_lessons(auth.session, auth.user_id, since=since)
    return await ai_service.analyze_learning_progress(user, lessons)


@router.post("/goal-milestones")
@ai_rate_limit
async def suggest_goal_milestones(
    request: Request,  # Required for rate limiting decorator
    data: GoalMilestonesRequest,
    _auth: CurrentAuth,
    ai_service: AI,
) -> MilestoneSuggestions:
    """Suggest a milestone breakdown for a goal that may not exist yet."""
    return await ai_service.suggest_goal_milestones(
        data.title,
        data.description,
        data.category.value,
        data.difficulty.value,
    )


@router.get("/insights")
async def get_insights(auth: CurrentAuth, ai_service: AI) -> InsightsResponse:
    """Rule-based insights, with an AI analysis whenever the AI is reachable."""
    user = await get_or_create_user(auth.session, auth.user_id)
    goals = await all_goals(auth.session, auth.user_id)
    since = utc_now() - timedelta(days=INSIGHT_WINDOW_DAYS)
    lessons = await completed_lessons(auth.session, auth.user_id, since=since)

    provider = FallbackInsightProvider(AIInsightProvider(ai_service), get_insight_breaker())
    report = await provider.generate(InsightRequest(user=user, goals=goals, recent_lessons=lessons))
    logger.debug(f"Insights for user {user.id} answered by {report.source.value}")
    return InsightsResponse.from_report(report)
