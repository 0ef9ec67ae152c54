"""Test doubles and builders shared across the test modules."""

import asyncio
import itertools
from datetime import date
from decimal import Decimal
from typing import Optional

from finance_tracker.models import AppState, Transaction, TransactionType


class FakeResponse:
    def __init__(self, text: str):
        self.text = text


class FakeModel:
    """Stands in for ``genai.GenerativeModel``; records every prompt."""

    def __init__(
        self,
        text: str = "",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt: str) -> FakeResponse:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


class RaisingAgent:
    """A categorization agent whose call itself blows up."""

    is_configured = True

    async def classify(self, description, categories, corrections=()):
        raise RuntimeError("network down")


def sequential_ids():
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


def make_expense(
    state: AppState,
    category_id: str,
    description: str = "Weekly shop",
    amount: str = "42.00",
    day: date = date(2024, 1, 15),
    ai_confidence: Optional[float] = 0.9,
    transaction_id: str = "txn-1",
) -> Transaction:
    return Transaction(
        id=transaction_id,
        description=description,
        amount=Decimal(amount),
        transaction_date=day,
        type=TransactionType.EXPENSE,
        category=state.find_category(category_id),
        ai_confidence=ai_confidence,
    )


def make_income(
    state: AppState,
    source_id: str,
    description: str = "Paycheck",
    amount: str = "1000.00",
    day: date = date(2024, 1, 1),
    transaction_id: str = "txn-inc",
) -> Transaction:
    return Transaction(
        id=transaction_id,
        description=description,
        amount=Decimal(amount),
        transaction_date=day,
        type=TransactionType.INCOME,
        category=state.income_category,
        income_source=state.find_income_source(source_id),
    )
