"""
Correction Ledger

Holds the authoritative mapping description -> corrected category id and
exposes a bounded sample of its newest rows for classifier prompting.

The ledger is immutable: ``record`` returns a new ledger.
"""

from typing import Iterable, Optional, Sequence

from finance_tracker.models.entities import Category, Correction, CorrectionExample

DEFAULT_EXAMPLES_LIMIT = 10
UNRESOLVED_CATEGORY_NAME = "Other"


class CorrectionLedger:
    """
    Ordered correction history, one row per distinct description.

    Rows are kept in recency-of-write order (oldest first), so the tail is
    always the freshest set of corrections.
    """

    def __init__(self, corrections: Iterable[Correction] = ()):
        self._entries: tuple[Correction, ...] = tuple(corrections)

    @property
    def entries(self) -> tuple[Correction, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, description: str, category_id: str) -> "CorrectionLedger":
        """
        Upsert a correction.

        Any prior row with the exact same description (case-sensitive) is
        dropped before the new row is appended.
        """
        correction = Correction(description=description, corrected_category_id=category_id)
        kept = tuple(c for c in self._entries if c.description != correction.description)
        return CorrectionLedger(kept + (correction,))

    def category_for(self, description: str) -> Optional[str]:
        """Corrected category id for an exact description, if any."""
        for correction in reversed(self._entries):
            if correction.description == description:
                return correction.corrected_category_id
        return None

    def recent_examples(
        self,
        categories: Sequence[Category],
        n: int = DEFAULT_EXAMPLES_LIMIT,
    ) -> list[CorrectionExample]:
        """
        The last ``n`` corrections resolved to category names.

        A correction whose category was since deleted resolves to "Other".
        """
        if n <= 0:
            return []
        names = {c.id: c.name for c in categories}
        return [
            CorrectionExample(
                description=c.description,
                category_name=names.get(c.corrected_category_id, UNRESOLVED_CATEGORY_NAME),
            )
            for c in self._entries[-n:]
        ]
