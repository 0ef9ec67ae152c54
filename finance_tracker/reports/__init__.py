"""Reporting package."""

from finance_tracker.reports.summary import (
    BudgetStatus,
    FinancialSummary,
    GoalProgress,
    GroupTotal,
    MonthlySummary,
    ReportBuilder,
)

__all__ = [
    "BudgetStatus",
    "FinancialSummary",
    "GoalProgress",
    "GroupTotal",
    "MonthlySummary",
    "ReportBuilder",
]
