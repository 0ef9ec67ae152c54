"""Tests for the correction ledger."""

import pytest

from finance_tracker.corrections import CorrectionLedger
from finance_tracker.models import DEFAULT_CATEGORIES, Correction


class TestCorrectionLedger:
    """Tests for recording and sampling corrections."""

    def test_record_appends(self):
        ledger = CorrectionLedger().record("Coffee", "cat-groceries")
        assert ledger.entries == (
            Correction(description="Coffee", corrected_category_id="cat-groceries"),
        )

    def test_record_is_immutable(self):
        """Test that recording returns a new ledger."""
        original = CorrectionLedger()
        original.record("Coffee", "cat-groceries")
        assert len(original) == 0

    def test_same_description_keeps_one_entry(self):
        """Test two corrections for one description leave the second."""
        ledger = (
            CorrectionLedger()
            .record("Uber", "cat-transport")
            .record("Coffee", "cat-groceries")
            .record("Uber", "cat-entertainment")
        )
        assert len(ledger) == 2
        assert ledger.category_for("Uber") == "cat-entertainment"
        # Re-recorded rows move to the tail
        assert ledger.entries[-1].description == "Uber"

    def test_description_match_is_case_sensitive(self):
        ledger = CorrectionLedger().record("uber", "cat-transport").record("Uber", "cat-other")
        assert len(ledger) == 2

    def test_category_for_unknown_description(self):
        assert CorrectionLedger().category_for("Coffee") is None

    def test_recent_examples_resolves_names(self):
        ledger = CorrectionLedger().record("Coffee", "cat-groceries")
        examples = ledger.recent_examples(DEFAULT_CATEGORIES)
        assert examples[0].description == "Coffee"
        assert examples[0].category_name == "Groceries"

    def test_recent_examples_deleted_category_is_other(self):
        """Test a correction pointing at a deleted category resolves to Other."""
        ledger = CorrectionLedger().record("Vet", "cat-pets")
        examples = ledger.recent_examples(DEFAULT_CATEGORIES)
        assert examples[0].category_name == "Other"

    def test_recent_examples_takes_newest(self):
        ledger = CorrectionLedger()
        for i in range(15):
            ledger = ledger.record(f"item {i}", "cat-shopping")
        examples = ledger.recent_examples(DEFAULT_CATEGORIES, n=10)
        assert len(examples) == 10
        assert examples[0].description == "item 5"
        assert examples[-1].description == "item 14"

    @pytest.mark.parametrize("n", [0, -1])
    def test_recent_examples_non_positive_n(self, n):
        ledger = CorrectionLedger().record("Coffee", "cat-groceries")
        assert ledger.recent_examples(DEFAULT_CATEGORIES, n=n) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
