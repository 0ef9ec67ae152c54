"""
Category / Income-Source Lifecycle Manager

Deletes cascade; renames do not.

- Deleting a category moves its expense transactions to "Other" and drops
  its budget, in one new snapshot.
- Deleting an income source moves its income transactions to the default
  "Other" source.
- Renaming or recoloring leaves every transaction's embedded snapshot as it
  was when the transaction was filed.
"""

from typing import Callable, Optional

import structlog

from finance_tracker.models.entities import (
    INCOME_CATEGORY_ID,
    OTHER_CATEGORY_ID,
    OTHER_INCOME_SOURCE_ID,
    Category,
    IncomeSource,
    TransactionType,
    new_id,
)
from finance_tracker.models.state import AppState

logger = structlog.get_logger(__name__)

PROTECTED_CATEGORY_IDS = frozenset({OTHER_CATEGORY_ID, INCOME_CATEGORY_ID})


def _merge(item, name: Optional[str], color: Optional[str]):
    changes = {}
    if name is not None:
        changes["name"] = name
    if color is not None:
        changes["color"] = color
    if not changes:
        return item
    # Re-validate so blank names are still rejected
    return type(item).model_validate({**item.model_dump(), **changes})


class TaxonomyManager:
    """Add / update / delete categories and income sources."""

    def __init__(self, id_factory: Callable[[str], str] = new_id):
        self._new_id = id_factory

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def add_category(
        self,
        state: AppState,
        name: str,
        color: str = "#6272A4",
    ) -> tuple[AppState, Category]:
        category = Category(id=self._new_id("cat"), name=name, color=color)
        return state.model_copy(update={"categories": state.categories + (category,)}), category

    def update_category(
        self,
        state: AppState,
        category_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> AppState:
        """Merge new fields into a category. Past transactions keep their snapshot."""
        return state.model_copy(
            update={
                "categories": tuple(
                    _merge(c, name, color) if c.id == category_id else c
                    for c in state.categories
                )
            }
        )

    def delete_category(self, state: AppState, category_id: str) -> AppState:
        """
        Delete a category and cascade.

        No-op for the protected defaults, or when "Other" is missing and there
        is nowhere to move transactions. "Income" is protected alongside
        "Other" because every income transaction is filed under it.
        """
        other = state.other_category
        if other is None or category_id in PROTECTED_CATEGORY_IDS:
            logger.info("category_delete_skipped", category_id=category_id)
            return state

        transactions = tuple(
            t.model_copy(update={"category": other})
            if t.type == TransactionType.EXPENSE and t.category.id == category_id
            else t
            for t in state.transactions
        )
        return state.model_copy(
            update={
                "transactions": transactions,
                "budgets": tuple(b for b in state.budgets if b.category_id != category_id),
                "categories": tuple(c for c in state.categories if c.id != category_id),
            }
        )

    # -------------------------------------------------------------------------
    # Income sources
    # -------------------------------------------------------------------------

    def add_income_source(
        self,
        state: AppState,
        name: str,
        color: str = "#F1FA8C",
    ) -> tuple[AppState, IncomeSource]:
        source = IncomeSource(id=self._new_id("is"), name=name, color=color)
        return (
            state.model_copy(update={"income_sources": state.income_sources + (source,)}),
            source,
        )

    def update_income_source(
        self,
        state: AppState,
        source_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> AppState:
        return state.model_copy(
            update={
                "income_sources": tuple(
                    _merge(s, name, color) if s.id == source_id else s
                    for s in state.income_sources
                )
            }
        )

    def delete_income_source(self, state: AppState, source_id: str) -> AppState:
        """Delete an income source, moving its income transactions to "Other"."""
        other = state.other_income_source
        if other is None or source_id == OTHER_INCOME_SOURCE_ID:
            logger.info("income_source_delete_skipped", source_id=source_id)
            return state

        transactions = tuple(
            t.model_copy(update={"income_source": other})
            if (
                t.type == TransactionType.INCOME
                and t.income_source is not None
                and t.income_source.id == source_id
            )
            else t
            for t in state.transactions
        )
        return state.model_copy(
            update={
                "transactions": transactions,
                "income_sources": tuple(s for s in state.income_sources if s.id != source_id),
            }
        )
