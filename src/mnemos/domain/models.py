"""
Domain models for card scheduling.

These are pure data structures with no I/O. Persisted values are frozen
pydantic models so they round-trip through JSON/YAML without loss.
"""

from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt, ValidationError

from .constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_EASY_INTERVAL,
    DEFAULT_GRADUATING_INTERVAL,
    DEFAULT_LEARNING_STEPS,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEWS_PER_DAY,
    MIN_EASE_FACTOR,
)
from .errors import InvalidInput, MalformedState


class CardState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"


# Fields a persisted record must spell out for its state; the rest may fall
# back to the creation defaults of a New card.
REQUIRED_FIELDS: dict[CardState, tuple[str, ...]] = {
    CardState.NEW: (),
    CardState.LEARNING: ("learning_step",),
    CardState.REVIEW: ("due_date", "interval", "ease_factor", "repetitions"),
}


class Quality(IntEnum):
    """Recall quality as pressed by the learner."""

    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3

    @classmethod
    def parse(cls, value: Any) -> "Quality":
        """
        Strictly convert an integer rating into a Quality.

        Booleans, floats and out-of-range integers are rejected rather than
        clamped.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput(f"quality must be an integer 0-3, got {value!r}")
        try:
            return cls(value)
        except ValueError:
            raise InvalidInput(f"quality must be between 0 and 3, got {value}") from None


class ReviewRecord(BaseModel):
    """
    A single rating event.

    Attributes:
        timestamp: When the rating was given.
        quality: The rating (0=Again, 1=Hard, 2=Good, 3=Easy).
        interval: Interval in days *before* this rating was applied.
        ease_factor: Ease factor *before* this rating was applied.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    quality: Quality
    interval: NonNegativeInt
    ease_factor: float


class SchedulingState(BaseModel):
    """
    Scheduling metadata attached to a card.

    Created once as New by the record-creation path and replaced (never
    mutated) by the interval engine on every rating.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    state: CardState = CardState.NEW
    interval: NonNegativeInt = 0
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)
    repetitions: NonNegativeInt = 0
    learning_step: NonNegativeInt = 0
    due_date: date | None = None
    last_review: datetime | None = None
    history: tuple[ReviewRecord, ...] = ()

    @classmethod
    def new(cls, ease_factor: float = DEFAULT_EASE_FACTOR) -> "SchedulingState":
        return cls(ease_factor=ease_factor)

    def check_integrity(self, card_id: str | None = None) -> None:
        """Raise MalformedState if a Review state lacks a due date or a positive interval."""
        if self.state is not CardState.REVIEW:
            return
        if self.due_date is None:
            raise MalformedState("review card has no due_date", card_id=card_id)
        if self.interval < 1:
            raise MalformedState(
                f"review card has interval {self.interval}, expected at least 1", card_id=card_id
            )

    def to_record(self) -> dict[str, Any]:
        """Plain JSON-compatible dict suitable for any record store."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, data: Any, card_id: str | None = None) -> "SchedulingState":
        """
        Rebuild a state from a persisted record.

        Validation failures surface as MalformedState. The record must name
        its state and carry every field REQUIRED_FIELDS lists for it; only the
        remaining fields fall back to the creation defaults of a New card.
        """
        if not isinstance(data, dict):
            raise MalformedState(f"expected a mapping, got {type(data).__name__}", card_id)
        if "state" not in data:
            raise MalformedState("scheduling record has no state", card_id=card_id)
        try:
            state = cls.model_validate(data)
        except ValidationError as e:
            raise MalformedState(str(e), card_id=card_id) from e

        missing = [name for name in REQUIRED_FIELDS[state.state] if name not in data]
        if missing:
            raise MalformedState(
                f"{state.state.value} record is missing {', '.join(missing)}", card_id=card_id
            )
        state.check_integrity(card_id)
        return state


class SessionSettings(BaseModel):
    """Per-collection scheduling settings."""

    model_config = ConfigDict(frozen=True)

    learning_steps: tuple[PositiveInt, ...] = DEFAULT_LEARNING_STEPS
    graduating_interval: PositiveInt = DEFAULT_GRADUATING_INTERVAL
    easy_interval: PositiveInt = DEFAULT_EASY_INTERVAL
    new_cards_per_day: NonNegativeInt = DEFAULT_NEW_CARDS_PER_DAY
    reviews_per_day: NonNegativeInt = DEFAULT_REVIEWS_PER_DAY
    starting_ease: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)


class Card(BaseModel):
    """
    A study item as seen by the scheduler.

    `content` is opaque to the engine; only `scheduling` is ever read or
    replaced.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    content: dict[str, Any] = Field(default_factory=dict)
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    scheduling: SchedulingState = Field(default_factory=SchedulingState)

    def with_scheduling(self, scheduling: SchedulingState) -> "Card":
        return self.model_copy(update={"scheduling": scheduling})

    @classmethod
    def from_record(cls, data: Any, starting_ease: float = DEFAULT_EASE_FACTOR) -> "Card":
        """
        Rebuild a card from a stored or submitted record.

        A record without a `scheduling` block is a card that was never
        reviewed and starts New at `starting_ease`. A record that has one must
        pass SchedulingState.from_record.
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise MalformedState("card record has no id")

        card_id = str(data["id"])
        scheduling = data.get("scheduling")
        if scheduling is None:
            state = SchedulingState.new(starting_ease)
        else:
            state = SchedulingState.from_record(scheduling, card_id=card_id)

        fields = {k: v for k, v in data.items() if k != "scheduling"}
        try:
            return cls.model_validate({**fields, "id": card_id, "scheduling": state})
        except ValidationError as e:
            raise MalformedState(str(e), card_id=card_id) from e
