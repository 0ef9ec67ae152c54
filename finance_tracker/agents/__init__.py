"""AI Agents package."""

from finance_tracker.agents.ai_agents import (
    FALLBACK_CATEGORY_NAME,
    HARD_FALLBACK_CONFIDENCE,
    INSIGHTS_DISABLED_MESSAGE,
    INSIGHTS_ERROR_MESSAGE,
    INSIGHTS_UNAVAILABLE_MESSAGE,
    SOFT_FALLBACK_CONFIDENCE,
    CategorizationAgent,
    CategorySuggestion,
    InsightsAgent,
    strip_code_fence,
)

__all__ = [
    "FALLBACK_CATEGORY_NAME",
    "HARD_FALLBACK_CONFIDENCE",
    "INSIGHTS_DISABLED_MESSAGE",
    "INSIGHTS_ERROR_MESSAGE",
    "INSIGHTS_UNAVAILABLE_MESSAGE",
    "SOFT_FALLBACK_CONFIDENCE",
    "CategorizationAgent",
    "CategorySuggestion",
    "InsightsAgent",
    "strip_code_fence",
]
