"""
Ports (interfaces) for card persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card, SchedulingState, SessionSettings
from .stats import StudyStats


class CardRepository(ABC):
    """
    Port for loading cards of one collection and writing back scheduling state.

    Implementations must guarantee at most one in-flight update per card:
    `save_scheduling` is expected to reject a state that was not computed
    from the currently stored one.

    Implementations:
        - YamlDeckRepository: a single YAML deck file.
    """

    @abstractmethod
    async def load_cards(self) -> list[Card]:
        """
        Fetch every card of the collection in creation order.

        Raises:
            MalformedState: a stored record failed validation.
        """
        pass

    @abstractmethod
    async def get_card(self, card_id: str) -> Card:
        """
        Fetch a single card.

        Raises:
            CardNotFound: no card has this identifier.
        """
        pass

    @abstractmethod
    async def save_scheduling(self, card_id: str, state: SchedulingState) -> Card:
        """
        Persist the engine's output for a card and return the updated card.

        Raises:
            CardNotFound: no card has this identifier.
            StaleStateError: the stored state changed since `state` was computed.
        """
        pass

    @abstractmethod
    async def load_settings(self) -> SessionSettings | None:
        """Collection settings, or None when the collection defines none."""
        pass

    @abstractmethod
    async def save_stats(self, stats: StudyStats) -> None:
        """Store a cached statistics snapshot for the collection."""
        pass
