"""
Report Builder

DESIGN DECISION: Reports are DETERMINISTIC and read-only.
They are pure aggregations over one ``AppState`` snapshot; nothing here
writes back or calls the LLM.

Totals are grouped by the snapshot embedded in each transaction, so a
renamed category still reports past spending under its old name.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.entities import Transaction, TransactionType
from finance_tracker.models.state import AppState


class FinancialSummary(BaseModel):
    """Headline totals."""

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


class GroupTotal(BaseModel):
    """Total for one category or income source."""

    id: str
    name: str
    color: str
    total: Decimal


class MonthlySummary(BaseModel):
    """Income/expense for one calendar month."""

    month: str = Field(description="YYYY-MM")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    cumulative_balance: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


class BudgetStatus(BaseModel):
    """Spending against one category budget for a month."""

    category_id: str
    name: str
    spent: Decimal
    budget: Decimal
    progress_raw: float = Field(description="spent / budget * 100, uncapped")

    @property
    def progress(self) -> float:
        """Progress capped at 100 for display."""
        return min(self.progress_raw, 100.0)

    @property
    def is_over(self) -> bool:
        return self.progress_raw > 100.0


class GoalProgress(BaseModel):
    """All goals taken together."""

    total_current: Decimal = Decimal("0")
    total_target: Decimal = Decimal("0")
    overall_progress: float = 0.0


def _month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


class ReportBuilder:
    """
    Aggregations over a state snapshot.

    GUARANTEES:
    - Only reports what is in the snapshot
    - Empty input gives zero totals, never an error
    """

    def __init__(self, state: AppState):
        self._state = state

    @property
    def _transactions(self) -> tuple[Transaction, ...]:
        return self._state.transactions

    def financial_summary(self) -> FinancialSummary:
        income = sum(
            (t.amount for t in self._transactions if t.type == TransactionType.INCOME),
            Decimal("0"),
        )
        expense = sum(
            (t.amount for t in self._transactions if t.type == TransactionType.EXPENSE),
            Decimal("0"),
        )
        return FinancialSummary(income=income, expense=expense)

    def expenses_by_category(self) -> list[GroupTotal]:
        """Expense totals per category, largest first."""
        totals: dict[str, GroupTotal] = {}
        for t in self._transactions:
            if t.type != TransactionType.EXPENSE:
                continue
            key = t.category.name
            if key not in totals:
                totals[key] = GroupTotal(
                    id=t.category.id, name=t.category.name, color=t.category.color, total=Decimal("0")
                )
            totals[key].total += t.amount
        return sorted(totals.values(), key=lambda g: g.total, reverse=True)

    def income_by_source(self) -> list[GroupTotal]:
        """Income totals per source, largest first. Income without a source is skipped."""
        totals: dict[str, GroupTotal] = {}
        for t in self._transactions:
            if t.type != TransactionType.INCOME or t.income_source is None:
                continue
            source = t.income_source
            if source.name not in totals:
                totals[source.name] = GroupTotal(
                    id=source.id, name=source.name, color=source.color, total=Decimal("0")
                )
            totals[source.name].total += t.amount
        return sorted(totals.values(), key=lambda g: g.total, reverse=True)

    def monthly_summary(self) -> list[MonthlySummary]:
        """Per-month totals in chronological order, with a running balance."""
        months: dict[str, MonthlySummary] = {}
        for t in self._transactions:
            key = _month_key(t.transaction_date)
            month = months.setdefault(key, MonthlySummary(month=key))
            if t.type == TransactionType.INCOME:
                month.income += t.amount
            else:
                month.expense += t.amount

        running = Decimal("0")
        ordered = [months[k] for k in sorted(months)]
        for month in ordered:
            running += month.balance
            month.cumulative_balance = running
        return ordered

    def budget_status(self, month: Optional[date] = None) -> list[BudgetStatus]:
        """
        Spending against each budget for the month containing ``month``
        (default: today). Budgets whose category no longer exists are skipped.
        Sorted by raw progress, most used first.
        """
        month = month or date.today()
        statuses = []
        for budget in self._state.budgets:
            category = self._state.find_category(budget.category_id)
            if category is None:
                continue
            spent = sum(
                (
                    t.amount
                    for t in self._transactions
                    if t.type == TransactionType.EXPENSE
                    and t.category.id == budget.category_id
                    and t.transaction_date.year == month.year
                    and t.transaction_date.month == month.month
                ),
                Decimal("0"),
            )
            statuses.append(
                BudgetStatus(
                    category_id=category.id,
                    name=category.name,
                    spent=spent,
                    budget=budget.amount,
                    progress_raw=float(spent / budget.amount * 100),
                )
            )
        return sorted(statuses, key=lambda s: s.progress_raw, reverse=True)

    def goal_progress(self) -> GoalProgress:
        goals = self._state.goals
        if not goals:
            return GoalProgress()
        total_current = sum((g.current_amount for g in goals), Decimal("0"))
        total_target = sum((g.target_amount for g in goals), Decimal("0"))
        overall = float(total_current / total_target * 100) if total_target > 0 else 0.0
        return GoalProgress(
            total_current=total_current,
            total_target=total_target,
            overall_progress=overall,
        )

    def recent_transactions(self, limit: int = 5) -> list[Transaction]:
        """The newest ``limit`` transactions (the store is newest first)."""
        return list(self._transactions[:limit])
