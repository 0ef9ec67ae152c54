"""Correction ledger package."""

from finance_tracker.corrections.ledger import (
    DEFAULT_EXAMPLES_LIMIT,
    CorrectionLedger,
)

__all__ = ["DEFAULT_EXAMPLES_LIMIT", "CorrectionLedger"]
