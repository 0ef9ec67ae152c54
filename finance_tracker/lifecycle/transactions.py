"""
Transaction Lifecycle Manager

States per transaction:
    Draft -> Classifying (expense only) -> Committed -> [Edited] -> Committed -> Deleted

The manager is functional: every operation takes the current ``AppState``
and returns the next one. The classifier call is the only suspend point.

Creation is split in two so callers can classify against one snapshot and
commit against a fresher one:
    prepared = await manager.prepare(state, draft)
    state = manager.commit(latest_state, prepared.transaction)
"""

import asyncio
from typing import Callable, Literal, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.agents import (
    HARD_FALLBACK_CONFIDENCE,
    CategorizationAgent,
)
from finance_tracker.corrections import CorrectionLedger
from finance_tracker.lifecycle.errors import MissingDefaultError, TransactionNotFoundError
from finance_tracker.models.entities import (
    INCOME_CATEGORY_ID,
    Category,
    Transaction,
    TransactionDraft,
    TransactionType,
    new_id,
)
from finance_tracker.models.state import AppState

logger = structlog.get_logger(__name__)


class PreparedTransaction(BaseModel):
    """A finalized transaction plus how its category was reached."""

    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    fallback: Optional[Literal["soft", "hard"]] = Field(
        default=None,
        description="Set when the expense landed on 'Other' without a real classification"
    )
    fallback_reason: Optional[str] = None


class TransactionLifecycleManager:
    """
    Orchestrates create / update / delete of transactions.

    RESPONSIBILITIES:
    - Classify expenses through the categorization agent
    - File income under "Income" with a resolved income source
    - Learn from user edits that override a machine-assigned category
    """

    def __init__(
        self,
        categorization_agent: Optional[CategorizationAgent] = None,
        timeout_seconds: Optional[float] = None,
        id_factory: Callable[[str], str] = new_id,
    ):
        """
        Args:
            categorization_agent: Classification adapter (default: from settings)
            timeout_seconds: Bound on one classification call. ``None`` waits forever.
            id_factory: Produces fresh ids from a prefix
        """
        self._agent = categorization_agent or CategorizationAgent()
        self._timeout = timeout_seconds
        self._new_id = id_factory

    @property
    def classifier_configured(self) -> bool:
        return self._agent.is_configured

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def prepare(
        self,
        state: AppState,
        draft: TransactionDraft,
        income_source_id: Optional[str] = None,
    ) -> PreparedTransaction:
        """
        Turn a draft into a finalized (not yet stored) transaction.

        Expenses go through the classifier. Income never does.
        """
        if draft.type == TransactionType.INCOME:
            return PreparedTransaction(
                transaction=self._prepare_income(state, draft, income_source_id)
            )
        return await self._prepare_expense(state, draft)

    def commit(self, state: AppState, transaction: Transaction) -> AppState:
        """
        Prepend a finalized transaction (newest first).

        References are re-anchored against ``state`` first: a category or
        source deleted while the transaction was being classified resolves
        to its "Other" default.
        """
        transaction = reanchor(state, transaction)
        return state.model_copy(
            update={"transactions": (transaction,) + state.transactions}
        )

    async def create(
        self,
        state: AppState,
        draft: TransactionDraft,
        income_source_id: Optional[str] = None,
    ) -> tuple[AppState, Transaction]:
        """Prepare and commit against the same snapshot."""
        prepared = await self.prepare(state, draft, income_source_id)
        state = self.commit(state, prepared.transaction)
        return state, state.transactions[0]

    def _prepare_income(
        self,
        state: AppState,
        draft: TransactionDraft,
        income_source_id: Optional[str],
    ) -> Transaction:
        income_category = state.income_category
        if income_category is None:
            raise MissingDefaultError("The 'Income' category is missing")

        source = state.find_income_source(income_source_id) if income_source_id else None
        if source is None:
            source = state.other_income_source

        return Transaction(
            **draft.model_dump(),
            id=self._new_id("txn"),
            category=income_category,
            income_source=source,
        )

    async def _prepare_expense(
        self,
        state: AppState,
        draft: TransactionDraft,
    ) -> PreparedTransaction:
        other = state.other_category
        if other is None:
            raise MissingDefaultError("The 'Other' category is missing")

        candidates = state.expense_categories
        fallback = None
        reason = None
        try:
            suggestion = await asyncio.wait_for(
                self._agent.classify(draft.description, candidates, state.corrections),
                timeout=self._timeout,
            )
            category = _resolve_by_name(candidates, suggestion.category)
            confidence = suggestion.confidence
            if suggestion.is_fallback or category is None:
                fallback = "soft"
                reason = (
                    "classifier response unusable"
                    if self._agent.is_configured
                    else "classifier not configured"
                )
                category = other
        except Exception as e:
            # Hard fallback: the call itself failed or timed out
            logger.warning(
                "categorization_hard_fallback",
                error_type=type(e).__name__,
                error=str(e),
            )
            category = other
            confidence = HARD_FALLBACK_CONFIDENCE
            fallback = "hard"
            reason = "classifier call failed or timed out"

        transaction = Transaction(
            **draft.model_dump(),
            id=self._new_id("txn"),
            category=category,
            ai_confidence=confidence,
        )
        return PreparedTransaction(
            transaction=transaction, fallback=fallback, fallback_reason=reason
        )

    # -------------------------------------------------------------------------
    # Update / delete
    # -------------------------------------------------------------------------

    def update(self, state: AppState, updated: Transaction) -> AppState:
        """
        Replace a stored transaction with the user's edited version.

        The edit is re-anchored against ``state`` first (see ``reanchor``),
        so an edit to income always lands on "Income" with a source.
        If the original was a machine-classified expense and the category
        changed, the edit is recorded as a correction. The stored result
        never carries a confidence: the user has now confirmed it.

        Raises:
            TransactionNotFoundError: If no transaction has ``updated.id``
        """
        original = state.find_transaction(updated.id)
        if original is None:
            raise TransactionNotFoundError(updated.id)

        final = reanchor(state, updated.model_copy(update={"ai_confidence": None}))

        corrections = state.corrections
        if (
            original.type == TransactionType.EXPENSE
            and final.type == TransactionType.EXPENSE
            and original.is_machine_classified
            and original.category.id != final.category.id
        ):
            ledger = CorrectionLedger(state.corrections).record(
                final.description, final.category.id
            )
            corrections = ledger.entries
            logger.info(
                "correction_recorded",
                transaction_id=final.id,
                from_category=original.category.id,
                to_category=final.category.id,
            )

        return state.model_copy(
            update={
                "transactions": tuple(
                    final if t.id == final.id else t for t in state.transactions
                ),
                "corrections": corrections,
            }
        )

    def delete(self, state: AppState, transaction_id: str) -> AppState:
        """Remove a transaction by id. Nothing else is touched."""
        return state.model_copy(
            update={
                "transactions": tuple(
                    t for t in state.transactions if t.id != transaction_id
                )
            }
        )


def reanchor(state: AppState, transaction: Transaction) -> Transaction:
    """
    Point a transaction's references at what exists in ``state``.

    - Income is filed under "Income" and keeps its source, or falls back to
      the default "Other" source when it has none or it was deleted.
    - An expense whose category was deleted (or is "Income") moves to "Other"
      and never carries a source.
    - References that still exist keep their snapshot, so renames made since
      the transaction was built do not propagate.

    Raises:
        MissingDefaultError: If the needed sentinel is missing from ``state``
    """
    changes = {}
    if transaction.type == TransactionType.INCOME:
        if (
            transaction.category.id != INCOME_CATEGORY_ID
            or state.find_category(INCOME_CATEGORY_ID) is None
        ):
            if state.income_category is None:
                raise MissingDefaultError("The 'Income' category is missing")
            changes["category"] = state.income_category

        source = transaction.income_source
        if source is None or state.find_income_source(source.id) is None:
            if state.other_income_source is None:
                raise MissingDefaultError("The default 'Other' income source is missing")
            changes["income_source"] = state.other_income_source
        changes["ai_confidence"] = None
    else:
        category = transaction.category
        if category.id == INCOME_CATEGORY_ID or state.find_category(category.id) is None:
            if state.other_category is None:
                raise MissingDefaultError("The 'Other' category is missing")
            changes["category"] = state.other_category
        changes["income_source"] = None

    # Rebuild through validation so the type invariants are checked
    return Transaction.model_validate({**transaction.model_dump(), **changes})


def _resolve_by_name(categories: tuple[Category, ...], name: str) -> Optional[Category]:
    wanted = name.strip().lower()
    return next((c for c in categories if c.name.lower() == wanted), None)
