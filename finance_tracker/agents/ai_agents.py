"""
AI Agents for the Finance Tracker

CRITICAL BOUNDARIES:

1. CATEGORIZATION AGENT (the classification service adapter):
   - CAN: Suggest one of the user's own expense categories + a confidence
   - CANNOT: Invent categories (hallucinations fall back to "Other")
   - CANNOT: Suggest "Income" (never offered as a candidate)
   - NEVER raises: every failure resolves to the soft fallback

2. INSIGHTS AGENT:
   - CAN: Turn recent transactions into a short list of tips
   - MUST: Return a single user-facing message when it cannot

The LLM is an ADVISOR, not an AUTHORITY.
Every answer it gives is validated against local data before use.
"""

import json
import re
from typing import Any, Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from finance_tracker.config import GeminiSettings, get_settings
from finance_tracker.corrections import DEFAULT_EXAMPLES_LIMIT, CorrectionLedger
from finance_tracker.models.entities import (
    INCOME_CATEGORY_ID,
    Category,
    Correction,
    CorrectionExample,
    Transaction,
)

logger = structlog.get_logger(__name__)

FALLBACK_CATEGORY_NAME = "Other"

# Soft: returned by the agent on output it cannot trust.
# Hard: used by the lifecycle manager when calling the agent raises.
SOFT_FALLBACK_CONFIDENCE = 0.5
HARD_FALLBACK_CONFIDENCE = 0.0

DEFAULT_INSIGHTS_LIMIT = 20
INSIGHTS_DISABLED_MESSAGE = "AI Insights are disabled. Please configure your API key."
INSIGHTS_UNAVAILABLE_MESSAGE = "Could not generate insights at this time."
INSIGHTS_ERROR_MESSAGE = "There was an issue getting AI insights. Please try again later."

_FENCED_BLOCK = re.compile(r"^```[A-Za-z0-9_-]*\s*(.*?)\s*```$", re.DOTALL)

_unconfigured_warned = False


def strip_code_fence(text: str) -> str:
    """Remove an enclosing ```lang ... ``` block, if the whole text is one."""
    text = text.strip()
    match = _FENCED_BLOCK.match(text)
    return match.group(1).strip() if match else text


def _warn_unconfigured(feature: str) -> None:
    """Log the missing-key warning once per process."""
    global _unconfigured_warned
    if not _unconfigured_warned:
        logger.warning(
            "gemini_unconfigured",
            feature=feature,
            message="Gemini API key not found. AI features will be disabled.",
        )
        _unconfigured_warned = True


class CategorySuggestion(BaseModel):
    """AI's suggestion for an expense category."""

    category: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)
    is_fallback: bool = Field(
        default=False,
        description="True when this is the agent's own soft fallback"
    )


def soft_fallback() -> CategorySuggestion:
    return CategorySuggestion(
        category=FALLBACK_CATEGORY_NAME,
        confidence=SOFT_FALLBACK_CONFIDENCE,
        is_fallback=True,
    )


class GeminiAgent:
    """
    Shared Gemini plumbing.

    A ready-made ``model`` (anything with ``generate_content_async``) can be
    injected; otherwise one is configured lazily from settings on first use.
    """

    max_output_tokens = 512

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _get_model(self) -> Any:
        """Configure Google Generative AI on first use."""
        if self._model is None:
            genai.configure(api_key=self._settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": min(self.max_output_tokens, self._settings.max_tokens),
                }
            )
        return self._model

    async def _generate(self, prompt: str) -> str:
        response = await self._get_model().generate_content_async(prompt)
        return response.text.strip()


def build_categorization_prompt(
    description: str,
    category_names: Sequence[str],
    examples: Sequence[CorrectionExample],
) -> str:
    examples_json = json.dumps(
        [{"description": e.description, "category": e.category_name} for e in examples]
    )
    return f"""You are an expert financial assistant. Categorize an expense from its description.

Available categories: [{', '.join(category_names)}]

Here are examples of how this user categorizes things. Treat them as a strong guide:
{examples_json}

Transaction description: {json.dumps(description)}

Respond with ONLY a JSON object containing "category" (one of the available
categories, spelled exactly) and "confidence" (a number from 0.0 to 1.0).
Example: {{"category": "Groceries", "confidence": 0.95}}"""


class CategorizationAgent(GeminiAgent):
    """
    Classification service adapter.

    ``classify`` always resolves to a suggestion. Any failure (no key,
    service error, unparseable output, unknown category) yields the soft
    fallback ``Other`` / 0.5.
    """

    max_output_tokens = 256

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        examples_limit: int = DEFAULT_EXAMPLES_LIMIT,
    ):
        super().__init__(settings=settings, model=model)
        self._examples_limit = examples_limit

    async def classify(
        self,
        description: str,
        categories: Sequence[Category],
        corrections: Sequence[Correction] = (),
    ) -> CategorySuggestion:
        """
        Suggest a category for an expense description.

        Args:
            description: Free-text transaction description
            categories: Candidate categories ("Income" is dropped if present)
            corrections: Full correction history; only the newest rows are used
        """
        if not self.is_configured:
            _warn_unconfigured("categorization")
            return soft_fallback()

        candidates = [c for c in categories if c.id != INCOME_CATEGORY_ID]
        candidate_names = [c.name for c in candidates]
        examples = CorrectionLedger(corrections).recent_examples(
            candidates, n=self._examples_limit
        )
        prompt = build_categorization_prompt(description, candidate_names, examples)

        try:
            text = await self._generate(prompt)
            data = json.loads(strip_code_fence(text))
            suggestion = CategorySuggestion.model_validate(
                {"category": data["category"], "confidence": data["confidence"]}
            )
        except Exception as e:
            logger.warning(
                "categorization_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return soft_fallback()

        wanted = suggestion.category.strip().lower()
        canonical = next((n for n in candidate_names if n.lower() == wanted), None)
        if canonical is None:
            logger.warning("categorization_unknown_category", returned=suggestion.category)
            return soft_fallback()

        return CategorySuggestion(category=canonical, confidence=suggestion.confidence)


def build_insights_prompt(transactions: Sequence[Transaction]) -> str:
    payload = [
        {
            "description": t.description,
            "amount": float(t.amount),
            "type": t.type.value,
            "category": t.category.name,
            "date": t.transaction_date.isoformat(),
        }
        for t in transactions
    ]
    return f"""Act as a friendly financial advisor. Analyze the following recent transactions and
give 3 concise, actionable tips for better money management. Focus on spending
patterns, potential savings and encouragement.

Respond with ONLY a JSON array of strings.

Transactions:
{json.dumps(payload)}"""


class InsightsAgent(GeminiAgent):
    """Generates natural-language financial tips from recent transactions."""

    max_output_tokens = 1024

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        transaction_limit: int = DEFAULT_INSIGHTS_LIMIT,
    ):
        super().__init__(settings=settings, model=model)
        self._transaction_limit = transaction_limit

    async def generate_insights(self, transactions: Sequence[Transaction]) -> list[str]:
        """
        Produce a list of tips for the newest transactions.

        ``transactions`` must be newest first (the store's order). On any
        failure the list holds exactly one user-facing message.
        """
        if not self.is_configured:
            _warn_unconfigured("insights")
            return [INSIGHTS_DISABLED_MESSAGE]

        prompt = build_insights_prompt(transactions[:self._transaction_limit])

        try:
            text = await self._generate(prompt)
            insights = json.loads(strip_code_fence(text))
        except Exception as e:
            logger.warning(
                "insights_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return [INSIGHTS_ERROR_MESSAGE]

        if not isinstance(insights, list):
            return [INSIGHTS_UNAVAILABLE_MESSAGE]

        tips = [str(tip).strip() for tip in insights if str(tip).strip()]
        return tips or [INSIGHTS_UNAVAILABLE_MESSAGE]
