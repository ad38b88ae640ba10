"""Learning insights: rule-based generator and the AI-with-fallback capability."""

from src.insights.providers import (
    AIInsightProvider,
    CircuitBreaker,
    FallbackInsightProvider,
    InsightReport,
    InsightRequest,
    InsightSource,
    RuleBasedInsightProvider,
    get_insight_breaker,
)
from src.insights.rules import RuleInsights, generate_insights


__all__ = [
    "AIInsightProvider",
    "CircuitBreaker",
    "FallbackInsightProvider",
    "InsightReport",
    "InsightRequest",
    "InsightSource",
    "RuleBasedInsightProvider",
    "RuleInsights",
    "generate_insights",
    "get_insight_breaker",
]
