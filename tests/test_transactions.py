"""Tests for the transaction lifecycle manager."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.agents import (
    HARD_FALLBACK_CONFIDENCE,
    SOFT_FALLBACK_CONFIDENCE,
    CategorizationAgent,
)
from finance_tracker.lifecycle import (
    MissingDefaultError,
    TaxonomyManager,
    TransactionLifecycleManager,
    TransactionNotFoundError,
)
from finance_tracker.models import (
    INCOME_CATEGORY_ID,
    OTHER_CATEGORY_ID,
    OTHER_INCOME_SOURCE_ID,
    Correction,
    TransactionDraft,
    TransactionType,
)

from helpers import FakeModel, RaisingAgent, make_expense, make_income


def coffee() -> TransactionDraft:
    return TransactionDraft(
        description="Coffee",
        amount=Decimal("4.5"),
        transaction_date=date(2024, 1, 1),
    )


def paycheck() -> TransactionDraft:
    return TransactionDraft(
        description="Paycheck",
        amount=Decimal("2500"),
        transaction_date=date(2024, 1, 31),
        type=TransactionType.INCOME,
    )


def manager_with(settings, model, ids, timeout=None) -> TransactionLifecycleManager:
    agent = CategorizationAgent(settings=settings, model=model)
    return TransactionLifecycleManager(agent, timeout_seconds=timeout, id_factory=ids)


class TestCreateExpense:
    """Tests for expense creation and classification fallbacks."""

    def test_no_classifier_configured(self, state, unconfigured_settings, ids):
        """Test "Coffee" 4.5 with no key -> Other @ 0.5."""
        manager = manager_with(unconfigured_settings, FakeModel(), ids)

        state, txn = asyncio.run(manager.create(state, coffee()))

        assert txn.category.name == "Other"
        assert txn.category.id == OTHER_CATEGORY_ID
        assert txn.ai_confidence == SOFT_FALLBACK_CONFIDENCE
        assert txn.income_source is None
        assert state.transactions == (txn,)

    def test_classified(self, state, configured_settings, ids):
        model = FakeModel('{"category": "Groceries", "confidence": 0.85}')
        manager = manager_with(configured_settings, model, ids)

        _, txn = asyncio.run(manager.create(state, coffee()))

        assert txn.category == state.find_category("cat-groceries")
        assert txn.ai_confidence == 0.85
        assert txn.id == "txn-1"

    def test_classifier_raises_is_hard_fallback(self, state, ids):
        """Test a failing classifier call -> Other @ 0."""
        manager = TransactionLifecycleManager(RaisingAgent(), id_factory=ids)

        _, txn = asyncio.run(manager.create(state, coffee()))

        assert txn.category.id == OTHER_CATEGORY_ID
        assert txn.ai_confidence == HARD_FALLBACK_CONFIDENCE

    def test_classifier_timeout_is_hard_fallback(self, state, configured_settings, ids):
        model = FakeModel('{"category": "Groceries", "confidence": 0.9}', delay=5)
        manager = manager_with(configured_settings, model, ids, timeout=0.01)

        _, txn = asyncio.run(manager.create(state, coffee()))

        assert txn.category.id == OTHER_CATEGORY_ID
        assert txn.ai_confidence == HARD_FALLBACK_CONFIDENCE

    def test_new_transactions_are_prepended(self, state, unconfigured_settings, ids):
        manager = manager_with(unconfigured_settings, FakeModel(), ids)

        state, first = asyncio.run(manager.create(state, coffee()))
        state, second = asyncio.run(manager.create(state, coffee()))

        assert [t.id for t in state.transactions] == [second.id, first.id]

    def test_category_is_a_snapshot(self, state, configured_settings, ids):
        """Test that renaming a category later leaves the stored copy alone."""
        model = FakeModel('{"category": "Groceries", "confidence": 0.85}')
        manager = manager_with(configured_settings, model, ids)
        state, txn = asyncio.run(manager.create(state, coffee()))

        renamed = state.model_copy(update={
            "categories": tuple(
                c.model_copy(update={"name": "Food"}) if c.id == "cat-groceries" else c
                for c in state.categories
            )
        })

        assert renamed.find_transaction(txn.id).category.name == "Groceries"

    def test_prepare_reports_soft_fallback(self, state, unconfigured_settings, ids):
        manager = manager_with(unconfigured_settings, FakeModel(), ids)

        prepared = asyncio.run(manager.prepare(state, coffee()))

        assert prepared.fallback == "soft"
        assert prepared.fallback_reason == "classifier not configured"

    def test_prepare_reports_hard_fallback(self, state, ids):
        manager = TransactionLifecycleManager(RaisingAgent(), id_factory=ids)

        prepared = asyncio.run(manager.prepare(state, coffee()))

        assert prepared.fallback == "hard"
        assert prepared.transaction.ai_confidence == HARD_FALLBACK_CONFIDENCE

    def test_genuine_other_at_half_confidence_is_not_a_fallback(
        self, state, configured_settings, ids
    ):
        """Test a real "Other" answer is not mistaken for a fallback by its confidence."""
        model = FakeModel('{"category": "Other", "confidence": 0.5}')
        manager = manager_with(configured_settings, model, ids)

        prepared = asyncio.run(manager.prepare(state, coffee()))

        assert prepared.transaction.category.id == OTHER_CATEGORY_ID
        assert prepared.transaction.ai_confidence == SOFT_FALLBACK_CONFIDENCE
        assert prepared.fallback is None

    def test_missing_other_category(self, state, unconfigured_settings, ids):
        state = state.model_copy(update={
            "categories": tuple(c for c in state.categories if c.id != OTHER_CATEGORY_ID)
        })
        manager = manager_with(unconfigured_settings, FakeModel(), ids)
        with pytest.raises(MissingDefaultError):
            asyncio.run(manager.create(state, coffee()))


class TestCreateIncome:
    """Tests for income creation."""

    def test_income_skips_classifier(self, state, configured_settings, ids):
        model = FakeModel('{"category": "Groceries", "confidence": 0.85}')
        manager = manager_with(configured_settings, model, ids)

        _, txn = asyncio.run(manager.create(state, paycheck(), income_source_id="is-salary"))

        assert model.prompts == []
        assert txn.category.id == INCOME_CATEGORY_ID
        assert txn.income_source.id == "is-salary"
        assert txn.ai_confidence is None

    def test_unknown_source_defaults_to_other(self, state, unconfigured_settings, ids):
        manager = manager_with(unconfigured_settings, FakeModel(), ids)

        _, txn = asyncio.run(manager.create(state, paycheck(), income_source_id="is-gone"))

        assert txn.income_source.id == OTHER_INCOME_SOURCE_ID

    def test_no_source_defaults_to_other(self, state, unconfigured_settings, ids):
        manager = manager_with(unconfigured_settings, FakeModel(), ids)
        _, txn = asyncio.run(manager.create(state, paycheck()))
        assert txn.income_source.id == OTHER_INCOME_SOURCE_ID

    def test_missing_income_category(self, state, unconfigured_settings, ids):
        state = state.model_copy(update={
            "categories": tuple(c for c in state.categories if c.id != INCOME_CATEGORY_ID)
        })
        manager = manager_with(unconfigured_settings, FakeModel(), ids)
        with pytest.raises(MissingDefaultError):
            asyncio.run(manager.create(state, paycheck()))


class TestCommit:
    """Tests for committing against a snapshot newer than the one classified."""

    @pytest.fixture
    def manager(self, configured_settings, ids):
        model = FakeModel('{"category": "Shopping", "confidence": 0.9}')
        return manager_with(configured_settings, model, ids)

    def test_category_deleted_while_classifying_goes_to_other(self, state, manager):
        prepared = asyncio.run(manager.prepare(state, coffee()))
        assert prepared.transaction.category.id == "cat-shopping"

        latest = TaxonomyManager().delete_category(state, "cat-shopping")
        latest = manager.commit(latest, prepared.transaction)

        stored = latest.transactions[0]
        assert stored.category == latest.other_category
        assert stored.ai_confidence == 0.9

    def test_renamed_category_keeps_snapshot(self, state, manager):
        prepared = asyncio.run(manager.prepare(state, coffee()))

        latest = TaxonomyManager().update_category(state, "cat-shopping", name="Retail")
        latest = manager.commit(latest, prepared.transaction)

        assert latest.transactions[0].category.name == "Shopping"

    def test_source_deleted_before_commit_goes_to_other(self, state, manager):
        prepared = asyncio.run(
            manager.prepare(state, paycheck(), income_source_id="is-freelance")
        )

        latest = TaxonomyManager().delete_income_source(state, "is-freelance")
        latest = manager.commit(latest, prepared.transaction)

        stored = latest.transactions[0]
        assert stored.income_source == latest.other_income_source
        assert stored.category.id == INCOME_CATEGORY_ID


class TestUpdate:
    """Tests for edits and correction learning."""

    @pytest.fixture
    def manager(self, unconfigured_settings, ids):
        return manager_with(unconfigured_settings, FakeModel(), ids)

    def test_recategorized_machine_expense_records_correction(self, state, manager):
        """Test Shopping @ 0.9 edited to Groceries is learned."""
        original = make_expense(state, "cat-shopping", description="Farmers market")
        state = manager.commit(state, original)

        edited = original.model_copy(
            update={"category": state.find_category("cat-groceries")}
        )
        state = manager.update(state, edited)

        assert state.corrections == (
            Correction(description="Farmers market", corrected_category_id="cat-groceries"),
        )
        stored = state.find_transaction(original.id)
        assert stored.category.id == "cat-groceries"
        assert stored.ai_confidence is None

    def test_same_category_records_nothing(self, state, manager):
        original = make_expense(state, "cat-shopping")
        state = manager.commit(state, original)

        state = manager.update(state, original.model_copy(update={"amount": Decimal("50")}))

        assert state.corrections == ()
        assert state.find_transaction(original.id).ai_confidence is None
        assert state.find_transaction(original.id).amount == Decimal("50")

    def test_user_confirmed_expense_records_nothing(self, state, manager):
        """Test a second edit of an already confirmed expense is not learned."""
        original = make_expense(state, "cat-shopping", ai_confidence=None)
        state = manager.commit(state, original)

        edited = original.model_copy(update={"category": state.find_category("cat-health")})
        state = manager.update(state, edited)

        assert state.corrections == ()

    def test_edited_description_is_what_is_learned(self, state, manager):
        original = make_expense(state, "cat-shopping", description="AMZN")
        state = manager.commit(state, original)

        edited = original.model_copy(update={
            "description": "Amazon groceries",
            "category": state.find_category("cat-groceries"),
        })
        state = manager.update(state, edited)

        assert state.corrections[0].description == "Amazon groceries"

    def test_income_to_expense_drops_source(self, state, manager):
        original = make_income(state, "is-salary")
        state = manager.commit(state, original)

        edited = original.model_copy(update={
            "type": TransactionType.EXPENSE,
            "category": state.find_category("cat-shopping"),
        })
        state = manager.update(state, edited)

        stored = state.find_transaction(original.id)
        assert stored.type == TransactionType.EXPENSE
        assert stored.income_source is None
        assert state.corrections == ()

    def test_update_preserves_order(self, state, manager):
        a = make_expense(state, "cat-shopping", transaction_id="a")
        b = make_expense(state, "cat-shopping", transaction_id="b")
        state = manager.commit(manager.commit(state, a), b)

        state = manager.update(state, a.model_copy(update={"amount": Decimal("1")}))

        assert [t.id for t in state.transactions] == ["b", "a"]

    def test_expense_to_income_files_under_income(self, state, manager):
        """Test an expense switched to income lands on Income with the default source."""
        original = make_expense(state, "cat-shopping")
        state = manager.commit(state, original)

        edited = original.model_copy(update={"type": TransactionType.INCOME})
        state = manager.update(state, edited)

        stored = state.find_transaction(original.id)
        assert stored.type == TransactionType.INCOME
        assert stored.category.id == INCOME_CATEGORY_ID
        assert stored.income_source.id == OTHER_INCOME_SOURCE_ID
        assert stored.ai_confidence is None
        assert state.corrections == ()

    def test_income_edit_keeps_chosen_source(self, state, manager):
        original = make_income(state, "is-other")
        state = manager.commit(state, original)

        edited = original.model_copy(
            update={"income_source": state.find_income_source("is-salary")}
        )
        state = manager.update(state, edited)

        assert state.find_transaction(original.id).income_source.id == "is-salary"

    def test_edit_to_deleted_category_goes_to_other(self, state, manager):
        original = make_expense(state, "cat-shopping")
        state = manager.commit(state, original)
        gone = state.find_category("cat-health")
        state = TaxonomyManager().delete_category(state, "cat-health")

        state = manager.update(state, original.model_copy(update={"category": gone}))

        stored = state.find_transaction(original.id)
        assert stored.category.id == OTHER_CATEGORY_ID
        assert state.corrections == (
            Correction(description=original.description, corrected_category_id=OTHER_CATEGORY_ID),
        )

    def test_unknown_id_raises(self, state, manager):
        with pytest.raises(TransactionNotFoundError):
            manager.update(state, make_expense(state, "cat-shopping", transaction_id="nope"))


class TestDelete:

    def test_delete_removes_only_that_transaction(self, state, unconfigured_settings, ids):
        manager = manager_with(unconfigured_settings, FakeModel(), ids)
        a = make_expense(state, "cat-shopping", transaction_id="a")
        b = make_expense(state, "cat-shopping", transaction_id="b")
        state = manager.commit(manager.commit(state, a), b)

        state = manager.delete(state, "a")

        assert [t.id for t in state.transactions] == ["b"]

    def test_delete_unknown_is_noop(self, state, unconfigured_settings, ids):
        manager = manager_with(unconfigured_settings, FakeModel(), ids)
        assert manager.delete(state, "nope") == state


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
