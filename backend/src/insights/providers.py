"""Insight capability: an AI-backed provider with a rule-based fallback.

The route asks a single FallbackInsightProvider for insights. It tries the
AI provider through a circuit breaker and answers from the rules whenever
the breaker is open or the AI call fails.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Protocol

from src.ai.models import ProgressAnalysis
from src.config.settings import get_settings
from src.exceptions import CollaboratorUnavailableError

from .rules import GoalSample, LessonSample, RuleInsights, generate_insights


if TYPE_CHECKING:
    from src.ai.service import AIService
    from src.goals.models import Goal
    from src.lessons.models import Lesson
    from src.users.models import User


logger = logging.getLogger(__name__)


class InsightSource(str, Enum):
    AI = "ai"
    RULES = "rules"


@dataclass(frozen=True)
class InsightRequest:
    """Everything a provider may read: the user, all goals, and last week's completed lessons."""

    user: User
    goals: Sequence[Goal]
    recent_lessons: Sequence[Lesson]

    def rule_insights(self) -> RuleInsights:
        return generate_insights(
            goals=[GoalSample(status=g.status, progress=g.progress) for g in self.goals],
            recent_lessons=[
                LessonSample(time_spent=lesson.time_spent, category=lesson.category)
                for lesson in self.recent_lessons
            ],
            daily_goal_minutes=self.user.daily_goal_minutes,
        )


@dataclass(frozen=True)
class InsightReport:
    insights: RuleInsights
    analysis: ProgressAnalysis
    source: InsightSource

    @property
    def ai_available(self) -> bool:
        return self.source is InsightSource.AI


class InsightProvider(Protocol):
    """Anything that can turn an InsightRequest into a progress analysis."""

    source: InsightSource

    async def analyze(self, request: InsightRequest) -> ProgressAnalysis: ...


class AIInsightProvider:
    source = InsightSource.AI

    def __init__(self, ai_service: AIService) -> None:
        self._ai_service = ai_service

    async def analyze(self, request: InsightRequest) -> ProgressAnalysis:
        return await self._ai_service.analyze_learning_progress(request.user, request.recent_lessons)


class RuleBasedInsightProvider:
    """Deterministic analysis built from the rule set; never fails."""

    source = InsightSource.RULES

    async def analyze(self, request: InsightRequest) -> ProgressAnalysis:
        return self.from_rules(request.rule_insights())

    @staticmethod
    def from_rules(insights: RuleInsights) -> ProgressAnalysis:
        goals = insights.goal_progress
        summary = (
            f"Averaging {insights.learning_velocity} minutes per day this week; "
            f"{goals.completed} of {goals.total} goals completed, {goals.in_progress} in progress."
        )
        return ProgressAnalysis(
            summary=summary,
            strengths=insights.strengths,
            improvements=insights.improvements,
            recommendations=insights.recommendations,
        )


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure breaker.

    Opens after ``failure_threshold`` consecutive failures and stays open for
    ``reset_seconds``. After the cool-down a single trial call is let through;
    its outcome closes or re-opens the circuit. Admitting the trial restarts
    the cool-down, so concurrent callers keep seeing an open circuit and a
    trial that never reports back only delays the next one.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        reset_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = max(1, failure_threshold)
        self.reset_seconds = reset_seconds
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None
        self._trial_pending = False

    @property
    def state(self) -> CircuitState:
        if self._opened_at is None:
            return CircuitState.CLOSED
        if self._clock() - self._opened_at >= self.reset_seconds:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    def allow_request(self) -> bool:
        state = self.state
        if state is CircuitState.HALF_OPEN:
            self._opened_at = self._clock()
            self._trial_pending = True
            return True
        return state is CircuitState.CLOSED

    def record_success(self) -> None:
        self._failures = 0
        self._opened_at = None
        self._trial_pending = False

    def record_failure(self) -> None:
        if self._trial_pending:
            logger.warning("Trial call failed, circuit re-opened")
            self._trial_pending = False
            self._opened_at = self._clock()
            return

        self._failures += 1
        if self._opened_at is None and self._failures >= self.failure_threshold:
            logger.warning(f"Circuit opened after {self._failures} consecutive failures")
            self._opened_at = self._clock()


class FallbackInsightProvider:
    """Try the remote provider, answer from the rules when it is unavailable."""

    def __init__(
        self,
        remote: InsightProvider,
        breaker: CircuitBreaker,
        fallback: RuleBasedInsightProvider | None = None,
    ) -> None:
        self._remote = remote
        self._breaker = breaker
        self._fallback = fallback or RuleBasedInsightProvider()

    async def generate(self, request: InsightRequest) -> InsightReport:
        insights = request.rule_insights()

        if self._breaker.allow_request():
            try:
                analysis = await self._remote.analyze(request)
            except CollaboratorUnavailableError as e:
                self._breaker.record_failure()
                logger.info(f"AI analysis unavailable, using fallback insights: {e}")
            else:
                self._breaker.record_success()
                return InsightReport(insights=insights, analysis=analysis, source=self._remote.source)
        else:
            logger.info("AI circuit open, using fallback insights")

        return InsightReport(
            insights=insights,
            analysis=self._fallback.from_rules(insights),
            source=self._fallback.source,
        )


@lru_cache
def get_insight_breaker() -> CircuitBreaker:
    """Process-wide breaker guarding the AI insight provider."""
    settings = get_settings()
    return CircuitBreaker(
        failure_threshold=settings.AI_CIRCUIT_FAILURE_THRESHOLD,
        reset_seconds=settings.AI_CIRCUIT_RESET_SECONDS,
    )
