"""Lifecycle managers: functional state transitions over ``AppState``."""

from finance_tracker.lifecycle.errors import (
    FormBusyError,
    LifecycleError,
    MissingDefaultError,
    TransactionNotFoundError,
)
from finance_tracker.lifecycle.planning import PlanningManager
from finance_tracker.lifecycle.taxonomy import PROTECTED_CATEGORY_IDS, TaxonomyManager
from finance_tracker.lifecycle.transactions import (
    PreparedTransaction,
    TransactionLifecycleManager,
    reanchor,
)

__all__ = [
    "FormBusyError",
    "LifecycleError",
    "MissingDefaultError",
    "PROTECTED_CATEGORY_IDS",
    "PlanningManager",
    "PreparedTransaction",
    "TaxonomyManager",
    "TransactionLifecycleManager",
    "TransactionNotFoundError",
    "reanchor",
]
