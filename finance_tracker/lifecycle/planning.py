"""
Goals and Budgets

Both are plain keyed collections with two rules worth enforcing:
- a goal's saved amount only grows, and never past its target
- a category has at most one budget, and a non-positive amount removes it
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Union

from finance_tracker.models.entities import Budget, Goal, new_id
from finance_tracker.models.state import AppState

Amount = Union[Decimal, int, float, str]


def _to_decimal(value: Amount) -> Decimal:
    # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
    return value if isinstance(value, Decimal) else Decimal(str(value))


class PlanningManager:
    """Savings goals and monthly budgets."""

    def __init__(self, id_factory: Callable[[str], str] = new_id):
        self._new_id = id_factory

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    def add_goal(
        self,
        state: AppState,
        name: str,
        target_amount: Amount,
        deadline: date,
    ) -> tuple[AppState, Goal]:
        goal = Goal(
            id=self._new_id("goal"),
            name=name,
            target_amount=_to_decimal(target_amount),
            current_amount=Decimal("0"),
            deadline=deadline,
        )
        return state.model_copy(update={"goals": state.goals + (goal,)}), goal

    def update_goal(self, state: AppState, goal_id: str, amount: Amount) -> AppState:
        """
        Contribute to a goal.

        The new saved amount is clamped at the target: target 100, saved 90,
        contribute 50 -> saved 100.

        Raises:
            ValueError: If ``amount`` is negative
        """
        contribution = _to_decimal(amount)
        if contribution < 0:
            raise ValueError("Contribution amount cannot be negative")

        return state.model_copy(
            update={
                "goals": tuple(
                    g.model_copy(
                        update={
                            "current_amount": min(g.current_amount + contribution, g.target_amount)
                        }
                    )
                    if g.id == goal_id
                    else g
                    for g in state.goals
                )
            }
        )

    def delete_goal(self, state: AppState, goal_id: str) -> AppState:
        return state.model_copy(
            update={"goals": tuple(g for g in state.goals if g.id != goal_id)}
        )

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def set_budget(self, state: AppState, category_id: str, amount: Amount) -> AppState:
        """
        Upsert the budget for a category.

        A zero or negative amount clears the existing row instead of storing it.
        Existing rows keep their position when updated.
        """
        value = _to_decimal(amount)
        if value <= 0:
            budgets = tuple(b for b in state.budgets if b.category_id != category_id)
        elif state.find_budget(category_id) is not None:
            budgets = tuple(
                Budget(category_id=category_id, amount=value) if b.category_id == category_id else b
                for b in state.budgets
            )
        else:
            budgets = state.budgets + (Budget(category_id=category_id, amount=value),)

        return state.model_copy(update={"budgets": budgets})
