# Domain Package
from .errors import CardNotFound, InvalidInput, MalformedState, SchedulingError, StaleStateError
from .models import Card, CardState, Quality, ReviewRecord, SchedulingState, SessionSettings
from .ports import CardRepository
from .stats import StudyStats

__all__ = [
    "Card",
    "CardState",
    "Quality",
    "ReviewRecord",
    "SchedulingState",
    "SessionSettings",
    "CardRepository",
    "StudyStats",
    "SchedulingError",
    "InvalidInput",
    "MalformedState",
    "CardNotFound",
    "StaleStateError",
]
