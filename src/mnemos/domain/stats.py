"""
Domain models for collection statistics.

Derived, in-memory values: recomputed from cards rather than persisted as
the source of truth.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from .constants import DEFAULT_EASE_FACTOR


@dataclass(frozen=True)
class StudyStats:
    """
    Summary counts for a set of cards.

    Attributes:
        total: Number of cards.
        new_count / learning_count / review_count: Cards per state.
        due_today: New + Learning + Review cards due on or before the reference date.
        average_ease: Mean ease factor (DEFAULT_EASE_FACTOR for no cards).
        last_studied: Most recent rating across all cards.
    """

    total: int = 0
    new_count: int = 0
    learning_count: int = 0
    review_count: int = 0
    due_today: int = 0
    average_ease: float = DEFAULT_EASE_FACTOR
    last_studied: datetime | None = None

    def to_record(self) -> dict[str, Any]:
        d = asdict(self)
        d["last_studied"] = self.last_studied.isoformat() if self.last_studied else None
        return d
