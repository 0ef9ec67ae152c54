"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.entities import (
    DEFAULT_CATEGORIES,
    DEFAULT_INCOME_SOURCES,
    INCOME_CATEGORY_ID,
    OTHER_CATEGORY_ID,
    OTHER_INCOME_SOURCE_ID,
    Budget,
    Category,
    Correction,
    CorrectionExample,
    Goal,
    IncomeSource,
    Transaction,
    TransactionDraft,
    TransactionType,
    new_id,
)
from finance_tracker.models.state import AppState
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entities
    "DEFAULT_CATEGORIES",
    "DEFAULT_INCOME_SOURCES",
    "INCOME_CATEGORY_ID",
    "OTHER_CATEGORY_ID",
    "OTHER_INCOME_SOURCE_ID",
    "Budget",
    "Category",
    "Correction",
    "CorrectionExample",
    "Goal",
    "IncomeSource",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "new_id",
    # State
    "AppState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
