"""
Application State Snapshot

DESIGN DECISION: All six collections live in one immutable ``AppState``.
Lifecycle managers take the current snapshot and return the next one, they
never mutate in place. The orchestrator is the only place that reads from or
writes to the entity store.
"""

from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from finance_tracker.models.entities import (
    DEFAULT_CATEGORIES,
    DEFAULT_INCOME_SOURCES,
    INCOME_CATEGORY_ID,
    OTHER_CATEGORY_ID,
    OTHER_INCOME_SOURCE_ID,
    Budget,
    Category,
    Correction,
    Goal,
    IncomeSource,
    Transaction,
)

logger = structlog.get_logger(__name__)


class AppState(BaseModel):
    """Immutable snapshot of every persisted collection."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    transactions: tuple[Transaction, ...] = Field(
        default=(),
        description="Newest first"
    )
    goals: tuple[Goal, ...] = ()
    categories: tuple[Category, ...] = DEFAULT_CATEGORIES
    income_sources: tuple[IncomeSource, ...] = DEFAULT_INCOME_SOURCES
    budgets: tuple[Budget, ...] = ()
    corrections: tuple[Correction, ...] = Field(
        default=(),
        description="Oldest first, one row per description"
    )

    # Persisted keys that failed validation on load
    _unreadable: frozenset[str] = PrivateAttr(default_factory=frozenset)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_category_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive name lookup."""
        wanted = name.strip().lower()
        return next((c for c in self.categories if c.name.lower() == wanted), None)

    def find_income_source(self, source_id: str) -> Optional[IncomeSource]:
        return next((s for s in self.income_sources if s.id == source_id), None)

    def find_goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def find_budget(self, category_id: str) -> Optional[Budget]:
        return next((b for b in self.budgets if b.category_id == category_id), None)

    @property
    def income_category(self) -> Optional[Category]:
        return self.find_category(INCOME_CATEGORY_ID)

    @property
    def other_category(self) -> Optional[Category]:
        return self.find_category(OTHER_CATEGORY_ID)

    @property
    def other_income_source(self) -> Optional[IncomeSource]:
        return self.find_income_source(OTHER_INCOME_SOURCE_ID)

    @property
    def expense_categories(self) -> tuple[Category, ...]:
        """Every category an expense may be filed under (all but "Income")."""
        return tuple(c for c in self.categories if c.id != INCOME_CATEGORY_ID)

    # -------------------------------------------------------------------------
    # Store mapping
    # -------------------------------------------------------------------------

    @classmethod
    def store_keys(cls) -> dict[str, str]:
        """Map of attribute name -> persisted key (``income_sources`` -> ``incomeSources``)."""
        return {name: field.alias or name for name, field in cls.model_fields.items()}

    def dump_collection(self, name: str) -> list[dict]:
        """Serialize one collection for the entity store."""
        return [item.to_store() for item in getattr(self, name)]

    def changed_collections(self, other: "AppState") -> list[str]:
        """Attribute names whose contents differ between two snapshots."""
        return [
            name for name in self.store_keys()
            if getattr(self, name) != getattr(other, name)
        ]

    @classmethod
    def load(cls, store: Any) -> "AppState":
        """
        Read every collection from an entity store.

        Missing keys fall back to their declared default (seeded categories
        and income sources). A collection that no longer validates is logged
        and replaced by its default rather than failing the whole load; its
        key is remembered so ``save`` can keep the stored value.
        """
        values: dict[str, Any] = {}
        unreadable = set()
        for name, key in cls.store_keys().items():
            field = cls.model_fields[name]
            raw = store.get(key, None)
            if raw is None:
                continue
            try:
                values[name] = TypeAdapter(field.annotation).validate_python(raw)
            except ValidationError as e:
                logger.warning(
                    "collection_unreadable",
                    key=key,
                    error_count=e.error_count(),
                )
                unreadable.add(key)
        state = cls(**values)
        state._unreadable = frozenset(unreadable)
        return state

    @property
    def unreadable_keys(self) -> frozenset[str]:
        return self._unreadable

    def save(self, store: Any, names: Optional[list[str]] = None) -> None:
        """
        Write the named collections (default: all) to an entity store.

        A key that was unreadable on load has its stored value copied to
        ``<key>.corrupt`` before being overwritten.
        """
        keys = self.store_keys()
        for name in names if names is not None else list(keys):
            key = keys[name]
            if key in self._unreadable:
                raw = store.get(key, None)
                if raw is not None:
                    store.set(f"{key}.corrupt", raw)
                    logger.warning("collection_backed_up", key=key, backup=f"{key}.corrupt")
            store.set(key, self.dump_collection(name))
