"""
Tests for the Finance Tracker

Test strategy:
1. Unit tests for individual components (models, ledger, managers)
2. Integration tests for flows (with fake Gemini models)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models import (
    DEFAULT_CATEGORIES,
    DEFAULT_INCOME_SOURCES,
    INCOME_CATEGORY_ID,
    OTHER_CATEGORY_ID,
    AppState,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    Category,
    Goal,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from finance_tracker.services.storage import InMemoryEntityStore

from helpers import make_expense, make_income


class TestEntityModels:
    """Tests for entity Pydantic models."""

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        category = Category(id="cat-x", name="  Pets  ")
        assert category.name == "Pets"

    def test_category_is_frozen(self):
        """Test that a category cannot be mutated in place."""
        category = Category(id="cat-x", name="Pets")
        with pytest.raises(ValueError):
            category.name = "Animals"

    def test_category_serializes_camel_case(self):
        """Test persisted keys are camelCase."""
        data = Category(id="cat-x", name="Pets", is_default=True).to_store()
        assert data == {"id": "cat-x", "name": "Pets", "color": "#6272A4", "isDefault": True}

    def test_draft_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in ("0", "-5"):
            with pytest.raises(ValueError):
                TransactionDraft(
                    description="Coffee",
                    amount=Decimal(amount),
                    transaction_date=date(2024, 1, 1),
                )

    def test_draft_accepts_date_alias(self):
        """Test the persisted ``date`` key populates ``transaction_date``."""
        draft = TransactionDraft.model_validate(
            {"description": "Coffee", "amount": "4.5", "date": "2024-01-01"}
        )
        assert draft.transaction_date == date(2024, 1, 1)
        assert draft.type == TransactionType.EXPENSE

    def test_income_cannot_carry_confidence(self, state):
        """Test that income never has an AI confidence."""
        with pytest.raises(ValueError, match="cannot carry an AI confidence"):
            Transaction(
                id="txn-1",
                description="Paycheck",
                amount=Decimal("100"),
                transaction_date=date(2024, 1, 1),
                type=TransactionType.INCOME,
                category=state.income_category,
                ai_confidence=0.5,
            )

    def test_expense_cannot_have_income_source(self, state):
        """Test that only income has a source."""
        with pytest.raises(ValueError, match="Only income transactions"):
            Transaction(
                id="txn-1",
                description="Coffee",
                amount=Decimal("4.5"),
                transaction_date=date(2024, 1, 1),
                category=state.other_category,
                income_source=state.other_income_source,
            )

    def test_transaction_round_trips_through_store_format(self, state):
        """Test that a stored transaction reads back identically."""
        txn = make_income(state, "is-salary")
        data = txn.to_store()
        assert data["incomeSource"]["id"] == "is-salary"
        assert "aiConfidence" not in data
        assert Transaction.model_validate(data) == txn

    def test_confidence_bounds(self, state):
        """Test confidence must be between 0 and 1."""
        with pytest.raises(ValueError):
            make_expense(state, "cat-shopping", ai_confidence=1.5)

    def test_goal_current_cannot_exceed_target(self):
        """Test goal progress validation."""
        with pytest.raises(ValueError, match="cannot exceed the target"):
            Goal(
                id="goal-1",
                name="Bike",
                target_amount=Decimal("100"),
                current_amount=Decimal("150"),
                deadline=date(2025, 1, 1),
            )

    def test_goal_progress(self):
        goal = Goal(
            id="goal-1",
            name="Bike",
            target_amount=Decimal("200"),
            current_amount=Decimal("50"),
            deadline=date(2025, 1, 1),
        )
        assert goal.progress_percent == 25.0
        assert goal.is_complete is False

    def test_budget_requires_positive_amount(self):
        with pytest.raises(ValueError):
            Budget(category_id="cat-health", amount=Decimal("0"))


class TestDefaults:
    """Tests for the seeded taxonomy."""

    def test_default_categories(self):
        """Test the eight seeded categories, in order."""
        names = [c.name for c in DEFAULT_CATEGORIES]
        assert names == [
            "Groceries", "Utilities", "Transport", "Entertainment",
            "Health", "Shopping", "Income", "Other",
        ]
        assert all(c.is_default for c in DEFAULT_CATEGORIES)

    def test_default_income_sources(self):
        names = [s.name for s in DEFAULT_INCOME_SOURCES]
        assert names == ["Salary", "Freelance", "Investments", "Other"]

    def test_sentinels_are_found_by_id(self, state):
        """Test a user category named "Other" never replaces the sentinel."""
        impostor = Category(id="cat-user", name="Other")
        state = state.model_copy(update={"categories": (impostor,) + state.categories})
        assert state.other_category.id == OTHER_CATEGORY_ID
        assert state.income_category.id == INCOME_CATEGORY_ID

    def test_expense_categories_exclude_income(self, state):
        assert INCOME_CATEGORY_ID not in {c.id for c in state.expense_categories}
        assert len(state.expense_categories) == 7


class TestAppState:
    """Tests for loading and saving the state snapshot."""

    def test_load_from_empty_store_seeds_defaults(self):
        state = AppState.load(InMemoryEntityStore())
        assert state.categories == DEFAULT_CATEGORIES
        assert state.income_sources == DEFAULT_INCOME_SOURCES
        assert state.transactions == ()

    def test_store_keys_are_camel_case(self):
        keys = AppState.store_keys()
        assert keys["income_sources"] == "incomeSources"
        assert set(keys.values()) == {
            "transactions", "goals", "categories", "incomeSources", "budgets", "corrections",
        }

    def test_save_then_load(self, state):
        state = state.model_copy(
            update={"transactions": (make_expense(state, "cat-shopping"),)}
        )
        store = InMemoryEntityStore()
        state.save(store)
        assert AppState.load(store) == state

    def test_unreadable_collection_falls_back_to_default(self):
        """Test a corrupt collection does not fail the whole load."""
        store = InMemoryEntityStore({
            "categories": [{"id": "cat-x"}],
            "budgets": [{"categoryId": "cat-health", "amount": "50"}],
        })
        state = AppState.load(store)
        assert state.categories == DEFAULT_CATEGORIES
        assert state.budgets[0].amount == Decimal("50")

    def test_unreadable_collection_backed_up_before_overwrite(self, state):
        """Test a corrupt collection is kept aside when its key is next written."""
        bad = [{"id": "txn-bad", "amount": "not a number"}]
        store = InMemoryEntityStore({"transactions": bad})

        loaded = AppState.load(store)
        assert loaded.unreadable_keys == frozenset({"transactions"})

        after = loaded.model_copy(
            update={"transactions": (make_expense(state, "cat-shopping"),)}
        )
        after.save(store, after.changed_collections(loaded))

        assert store.get("transactions.corrupt") == bad
        assert store.get("transactions")[0]["id"] == "txn-1"

    def test_readable_collection_not_backed_up(self, state):
        store = InMemoryEntityStore()
        state.save(store)
        AppState.load(store).save(store)
        assert not any(k.endswith(".corrupt") for k in store.keys())

    def test_changed_collections(self, state):
        after = state.model_copy(update={"goals": ()})
        assert after.changed_collections(state) == []
        after = state.model_copy(
            update={"budgets": (Budget(category_id="cat-health", amount=Decimal("10")),)}
        )
        assert after.changed_collections(state) == ["budgets"]


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            description="Transaction deleted",
        )
        assert event.event_type == AuditEventType.TRANSACTION_DELETED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            description="Budget set",
            details={"amount": "100"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "budget_set"
        assert log_dict["details"]["amount"] == "100"

    def test_audit_event_builder_transaction_created(self):
        """Test AuditEventBuilder.transaction_created."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_created(
            transaction_id="txn-1",
            transaction_type="expense",
            category_name="Groceries",
            ai_confidence=0.9,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == "txn-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_fallback_is_warning(self):
        event = AuditEventBuilder.classification_fallback(
            kind="hard", confidence=0.0, reason="timeout"
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["kind"] == "hard"

    def test_audit_event_builder_taxonomy_changed(self):
        event = AuditEventBuilder.taxonomy_changed(
            AuditEventType.CATEGORY_DELETED, "category", "cat-x",
            {"transactions_reassigned": 2},
        )
        assert event.description == "Category deleted"
        assert event.details["transactions_reassigned"] == 2

    def test_budget_changed_cleared(self):
        event = AuditEventBuilder.budget_changed("cat-health", amount="0", cleared=True)
        assert event.event_type == AuditEventType.BUDGET_CLEARED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
