"""
Core Data Models for the Finance Tracker

These models define the strict schemas for every persisted entity.
They are designed to:
1. Enforce type safety at runtime
2. Round-trip through the key-value store as plain JSON
3. Stay immutable once built, so a transaction's category is a true snapshot

DESIGN DECISION: Python attributes are snake_case, persisted JSON is
camelCase (``isDefault``, ``aiConfidence``, ``incomeSource``...). The alias
generator keeps both worlds in sync.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# WELL-KNOWN IDENTIFIERS
# =============================================================================

# Assigned at seed time. Sentinels are always looked up by id, never by name,
# so a user-created category called "Other" cannot hijack the fallback.
INCOME_CATEGORY_ID = "cat-income"
OTHER_CATEGORY_ID = "cat-other"
OTHER_INCOME_SOURCE_ID = "is-other"


def new_id(prefix: str) -> str:
    """Create a fresh opaque identifier such as ``txn-3f2a9c...``."""
    return f"{prefix}-{uuid4().hex[:12]}"


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# BASE MODEL
# =============================================================================

class EntityModel(BaseModel):
    """Frozen model persisted with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    def to_store(self) -> dict:
        """Serialize for the entity store (absent optionals are omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# TAXONOMY
# =============================================================================

class TaxonomyItem(EntityModel):
    """Shared shape of categories and income sources."""

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name (unique, matched case-insensitively)"
    )
    color: str = Field(
        default="#6272A4",
        max_length=32,
        description="Display color"
    )
    is_default: bool = Field(
        default=False,
        description="Seeded by the application"
    )


class Category(TaxonomyItem):
    """Expense category (plus the system-managed "Income" category)."""


class IncomeSource(TaxonomyItem):
    """Where income comes from. Independent namespace from categories."""


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="cat-groceries", name="Groceries", color="#FFB86C", is_default=True),
    Category(id="cat-utilities", name="Utilities", color="#FF79C6", is_default=True),
    Category(id="cat-transport", name="Transport", color="#8BE9FD", is_default=True),
    Category(id="cat-entertainment", name="Entertainment", color="#50FA7B", is_default=True),
    Category(id="cat-health", name="Health", color="#FF5555", is_default=True),
    Category(id="cat-shopping", name="Shopping", color="#BD93F9", is_default=True),
    Category(id=INCOME_CATEGORY_ID, name="Income", color="#F1FA8C", is_default=True),
    Category(id=OTHER_CATEGORY_ID, name="Other", color="#6272A4", is_default=True),
)

DEFAULT_INCOME_SOURCES: tuple[IncomeSource, ...] = (
    IncomeSource(id="is-salary", name="Salary", color="#50FA7B", is_default=True),
    IncomeSource(id="is-freelance", name="Freelance", color="#8BE9FD", is_default=True),
    IncomeSource(id="is-investments", name="Investments", color="#BD93F9", is_default=True),
    IncomeSource(id=OTHER_INCOME_SOURCE_ID, name="Other", color="#F1FA8C", is_default=True),
)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(EntityModel):
    """
    What the user submits before an id or category exists.

    The category is never part of a draft: expenses are classified,
    income is always filed under "Income".
    """

    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Free-text description"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount (always positive, direction comes from type)"
    )
    transaction_date: date = Field(
        ...,
        alias="date",
        description="Date of the transaction"
    )
    type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        description="Income or expense"
    )


class Transaction(TransactionDraft):
    """
    A committed transaction.

    ``category`` and ``income_source`` are value copies taken at assignment
    time. ``ai_confidence`` is only present on machine-classified expenses;
    its absence means "income" or "confirmed by the user".
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier"
    )
    category: Category
    income_source: Optional[IncomeSource] = None
    ai_confidence: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Classifier confidence (0-1)"
    )

    @model_validator(mode='after')
    def validate_type_invariants(self) -> 'Transaction':
        """Income carries a source and no confidence; expenses carry no source."""
        if self.type == TransactionType.INCOME:
            if self.ai_confidence is not None:
                raise ValueError("Income transactions cannot carry an AI confidence")
        elif self.income_source is not None:
            raise ValueError("Only income transactions can have an income source")
        return self

    @property
    def is_machine_classified(self) -> bool:
        return self.ai_confidence is not None


# =============================================================================
# GOALS, BUDGETS, CORRECTIONS
# =============================================================================

class Goal(EntityModel):
    """A savings goal."""

    id: str = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Goal name"
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount to reach"
    )
    current_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount saved so far"
    )
    deadline: date

    @model_validator(mode='after')
    def validate_progress(self) -> 'Goal':
        if self.current_amount > self.target_amount:
            raise ValueError("Current amount cannot exceed the target amount")
        return self

    @property
    def progress_percent(self) -> float:
        return float(self.current_amount / self.target_amount * 100)

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount


class Budget(EntityModel):
    """Monthly spending limit for one category (at most one per category)."""

    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Monthly limit"
    )


class Correction(EntityModel):
    """A user override of a machine-suggested category."""

    description: str = Field(
        ...,
        min_length=1,
        description="Transaction description the user corrected"
    )
    corrected_category_id: str = Field(..., min_length=1)


class CorrectionExample(EntityModel):
    """A correction resolved to a category name, ready for prompting."""

    description: str
    category_name: str
