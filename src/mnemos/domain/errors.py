"""Errors raised by the scheduling engine and its persistence boundary.

None of these are transient: they signal a caller contract violation or
corrupted data, so retrying the same call will fail the same way.
"""


class SchedulingError(Exception):
    """Base class for every mnemos error."""


class InvalidInput(SchedulingError, ValueError):
    """A rating outside 0-3, or settings without learning steps."""


class MalformedState(SchedulingError):
    """A scheduling record is missing required data or failed validation."""

    def __init__(self, message: str, card_id: str | None = None):
        self.card_id = card_id
        if card_id is not None:
            message = f"card {card_id}: {message}"
        super().__init__(message)


class CardNotFound(SchedulingError, KeyError):
    """The repository has no card with the requested identifier."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(card_id)

    def __str__(self) -> str:
        return f"card not found: {self.card_id}"


class StaleStateError(SchedulingError):
    """A write-back was computed from an outdated scheduling state."""
