"""
Main Orchestrator for the Finance Tracker

This module ties the lifecycle managers to the entity store and defines the
end-to-end flows for:
1. Transactions (draft -> classify -> commit, edit, delete)
2. Taxonomy (categories and income sources, with delete cascades)
3. Planning (goals and budgets)
4. Insights and reports

DESIGN DECISION: The orchestrator enforces the boundaries:
- Managers never touch storage; only the orchestrator loads and saves
- Only collections that actually changed are written back
- Every state-changing step is audited

Writes are read-modify-write against the latest snapshot. An expense is
classified against the snapshot loaded at submit time, then committed to a
snapshot reloaded after classification returns.
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.agents import CategorizationAgent, InsightsAgent
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import AppSettings, Settings, get_settings
from finance_tracker.lifecycle import (
    FormBusyError,
    PlanningManager,
    PreparedTransaction,
    TaxonomyManager,
    TransactionLifecycleManager,
)
from finance_tracker.models import (
    AppState,
    AuditEventBuilder,
    AuditEventType,
    Category,
    Goal,
    IncomeSource,
    Transaction,
    TransactionDraft,
)
from finance_tracker.reports import ReportBuilder
from finance_tracker.services.storage import (
    AuditStorageInterface,
    EntityStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntityStore,
    InMemoryAuditStorage,
    InMemoryEntityStore,
    JsonFileEntityStore,
)

logger = structlog.get_logger(__name__)


def _count_moved(before: AppState, after: AppState, attr: str) -> int:
    """Transactions whose ``category`` / ``income_source`` reference changed."""
    previous = {t.id: getattr(t, attr) for t in before.transactions}
    return sum(
        1 for t in after.transactions
        if t.id in previous and getattr(t, attr) != previous[t.id]
    )


class FinanceTracker:
    """
    Application facade over the entity store.

    Each operation loads the current ``AppState``, runs one manager
    transition, and writes back the collections that changed.
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        transaction_manager: Optional[TransactionLifecycleManager] = None,
        taxonomy_manager: Optional[TaxonomyManager] = None,
        planning_manager: Optional[PlanningManager] = None,
        insights_agent: Optional[InsightsAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        app_settings = settings or get_settings().app
        self._store = store
        self._transactions = transaction_manager or TransactionLifecycleManager(
            categorization_agent=CategorizationAgent(
                examples_limit=app_settings.correction_examples_limit
            ),
            timeout_seconds=app_settings.classifier_timeout_seconds,
        )
        self._taxonomy = taxonomy_manager or TaxonomyManager()
        self._planning = planning_manager or PlanningManager()
        self._insights = insights_agent or InsightsAgent(
            transaction_limit=app_settings.insights_transaction_limit
        )
        self._audit = audit_logger or AuditLogger()
        self._unconfigured_reported = False

    # -------------------------------------------------------------------------
    # State plumbing
    # -------------------------------------------------------------------------

    def load_state(self) -> AppState:
        """Current snapshot (seeded defaults for keys never written)."""
        return AppState.load(self._store)

    def _commit(self, before: AppState, after: AppState) -> AppState:
        changed = after.changed_collections(before)
        if changed:
            after.save(self._store, changed)
            logger.debug("state_saved", collections=changed)
        return after

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        draft: TransactionDraft,
        income_source_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Create a transaction from a draft.

        Expenses are classified first (the only suspend point). The result is
        committed to a snapshot reloaded after classification, so writes made
        meanwhile are not lost.
        """
        correlation_id = correlation_id or create_correlation_id()

        prepared = await self._transactions.prepare(
            self.load_state(), draft, income_source_id
        )

        latest = self.load_state()
        after = self._commit(latest, self._transactions.commit(latest, prepared.transaction))
        transaction = after.transactions[0]

        if prepared.fallback is not None:
            self._audit_classification(prepared, correlation_id)

        self._audit.log(
            AuditEventBuilder.transaction_created(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                category_name=transaction.category.name,
                ai_confidence=transaction.ai_confidence,
                correlation_id=correlation_id,
            )
        )
        return transaction

    def _audit_classification(
        self, prepared: PreparedTransaction, correlation_id: UUID
    ) -> None:
        if not self._transactions.classifier_configured and not self._unconfigured_reported:
            self._audit.log(AuditEventBuilder.classifier_unconfigured())
            self._unconfigured_reported = True

        self._audit.log(
            AuditEventBuilder.classification_fallback(
                kind=prepared.fallback,
                confidence=prepared.transaction.ai_confidence,
                reason=prepared.fallback_reason,
                correlation_id=correlation_id,
            )
        )

    def update_transaction(self, updated: Transaction) -> Transaction:
        """
        Store the user's edit of a transaction.

        Returns the stored version (confidence removed).

        Raises:
            TransactionNotFoundError: If the id is unknown
        """
        before = self.load_state()
        after = self._commit(before, self._transactions.update(before, updated))
        stored = after.find_transaction(updated.id)

        correction_recorded = after.corrections != before.corrections
        if correction_recorded:
            self._audit.log(
                AuditEventBuilder.correction_recorded(
                    description=stored.description,
                    category_id=stored.category.id,
                )
            )
        self._audit.log(
            AuditEventBuilder.transaction_updated(stored.id, correction_recorded)
        )
        return stored

    def delete_transaction(self, transaction_id: str) -> None:
        before = self.load_state()
        self._commit(before, self._transactions.delete(before, transaction_id))
        self._audit.log(AuditEventBuilder.transaction_deleted(transaction_id))

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def add_category(self, name: str, color: str = "#6272A4") -> Category:
        before = self.load_state()
        after, category = self._taxonomy.add_category(before, name, color)
        self._commit(before, after)
        self._audit.log(
            AuditEventBuilder.taxonomy_changed(
                AuditEventType.CATEGORY_ADDED, "category", category.id, {"name": category.name}
            )
        )
        return category

    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Optional[Category]:
        before = self.load_state()
        after = self._commit(
            before, self._taxonomy.update_category(before, category_id, name, color)
        )
        self._audit.log(
            AuditEventBuilder.taxonomy_changed(
                AuditEventType.CATEGORY_UPDATED, "category", category_id,
                {"name": name, "color": color},
            )
        )
        return after.find_category(category_id)

    def delete_category(self, category_id: str) -> bool:
        """
        Delete a category, moving its expenses to "Other" and dropping its budget.

        Returns False when the delete was refused (protected default).
        """
        before = self.load_state()
        after = self._taxonomy.delete_category(before, category_id)
        if after is before:
            return False

        self._commit(before, after)
        self._audit.log(
            AuditEventBuilder.taxonomy_changed(
                AuditEventType.CATEGORY_DELETED, "category", category_id,
                {
                    "transactions_reassigned": _count_moved(before, after, "category"),
                    "budgets_removed": len(before.budgets) - len(after.budgets),
                },
            )
        )
        return True

    # -------------------------------------------------------------------------
    # Income sources
    # -------------------------------------------------------------------------

    def add_income_source(self, name: str, color: str = "#F1FA8C") -> IncomeSource:
        before = self.load_state()
        after, source = self._taxonomy.add_income_source(before, name, color)
        self._commit(before, after)
        self._audit.log(
            AuditEventBuilder.taxonomy_changed(
                AuditEventType.INCOME_SOURCE_ADDED, "income_source", source.id,
                {"name": source.name},
            )
        )
        return source

    def update_income_source(
        self,
        source_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Optional[IncomeSource]:
        before = self.load_state()
        after = self._commit(
            before, self._taxonomy.update_income_source(before, source_id, name, color)
        )
        self._audit.log(
            AuditEventBuilder.taxonomy_changed(
                AuditEventType.INCOME_SOURCE_UPDATED, "income_source", source_id,
                {"name": name, "color": color},
            )
        )
        return after.find_income_source(source_id)

    def delete_income_source(self, source_id: str) -> bool:
        before = self.load_state()
        after = self._taxonomy.delete_income_source(before, source_id)
        if after is before:
            return False

        self._commit(before, after)
        self._audit.log(
            AuditEventBuilder.taxonomy_changed(
                AuditEventType.INCOME_SOURCE_DELETED, "income_source", source_id,
                {"transactions_reassigned": _count_moved(before, after, "income_source")},
            )
        )
        return True

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def set_budget(self, category_id: str, amount) -> None:
        before = self.load_state()
        after = self._commit(before, self._planning.set_budget(before, category_id, amount))
        self._audit.log(
            AuditEventBuilder.budget_changed(
                category_id,
                amount=str(amount),
                cleared=after.find_budget(category_id) is None,
            )
        )

    def add_goal(self, name: str, target_amount, deadline: date) -> Goal:
        before = self.load_state()
        after, goal = self._planning.add_goal(before, name, target_amount, deadline)
        self._commit(before, after)
        self._audit.log(
            AuditEventBuilder.goal_changed(
                AuditEventType.GOAL_ADDED, goal.id,
                {"name": goal.name, "target_amount": str(goal.target_amount)},
            )
        )
        return goal

    def update_goal(self, goal_id: str, amount) -> Optional[Goal]:
        """
        Contribute ``amount`` to a goal (clamped at its target).

        Raises:
            ValueError: If ``amount`` is negative
        """
        before = self.load_state()
        after = self._commit(before, self._planning.update_goal(before, goal_id, amount))
        goal = after.find_goal(goal_id)
        self._audit.log(
            AuditEventBuilder.goal_changed(
                AuditEventType.GOAL_CONTRIBUTED, goal_id,
                {
                    "amount": str(amount),
                    "current_amount": str(goal.current_amount) if goal else None,
                },
            )
        )
        return goal

    def delete_goal(self, goal_id: str) -> None:
        before = self.load_state()
        self._commit(before, self._planning.delete_goal(before, goal_id))
        self._audit.log(AuditEventBuilder.goal_changed(AuditEventType.GOAL_DELETED, goal_id))

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    async def get_insights(self) -> list[str]:
        tips = await self._insights.generate_insights(self.load_state().transactions)
        self._audit.log(
            AuditEventBuilder.insights_generated(len(tips), self._insights.is_configured)
        )
        return tips

    def reports(self) -> ReportBuilder:
        return ReportBuilder(self.load_state())

    def new_transaction_form(self) -> "TransactionForm":
        return TransactionForm(self)


class TransactionForm:
    """
    One transaction-entry form.

    While its submission is being categorized the form is busy and rejects
    a second submit. Other forms are unaffected.
    """

    def __init__(self, tracker: FinanceTracker):
        self._tracker = tracker
        self._categorizing = False

    @property
    def is_categorizing(self) -> bool:
        return self._categorizing

    async def submit(
        self,
        draft: TransactionDraft,
        income_source_id: Optional[str] = None,
    ) -> Transaction:
        """
        Raises:
            FormBusyError: If the previous submission is still in flight
        """
        if self._categorizing:
            raise FormBusyError("This form is still categorizing its last submission")

        self._categorizing = True
        try:
            return await self._tracker.add_transaction(draft, income_source_id)
        finally:
            self._categorizing = False


def create_storage(
    settings: Optional[Settings] = None,
) -> tuple[EntityStoreInterface, Optional[AuditStorageInterface]]:
    """
    Build the entity store and audit sink selected by ``STORAGE_BACKEND``.

    The json backend has no audit sink; its audit trail is the local log.
    """
    storage = (settings or get_settings()).storage

    if storage.backend == "memory":
        return InMemoryEntityStore(), InMemoryAuditStorage()
    if storage.backend == "google_sheets":
        client = GoogleSheetsClient(storage)
        client.get_state_sheet()
        return GoogleSheetsEntityStore(client), GoogleSheetsAuditStorage(client)
    return JsonFileEntityStore(storage.data_path), None


def create_app_components(
    settings: Optional[Settings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FinanceTracker:
    """
    Factory function to create the application facade.

    Falls back to an in-memory store if the configured backend cannot be
    built (e.g. Google Sheets without credentials).
    """
    settings = settings or get_settings()

    try:
        store, audit_storage = create_storage(settings)
        error = None
    except Exception as e:
        store, audit_storage = InMemoryEntityStore(), None
        error = e

    audit_logger = audit_logger or AuditLogger(audit_storage)
    if error is not None:
        # Storage not configured - continue in memory
        audit_logger.log(
            AuditEventBuilder.system_error(
                error_type="storage_not_configured",
                error_message=str(error),
                details={"backend": settings.storage.backend},
            )
        )

    return FinanceTracker(
        store=store,
        audit_logger=audit_logger,
        settings=settings.app,
    )
