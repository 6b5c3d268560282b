"""Study stats service: loads cards from the repository and summarizes them."""

import logging
from datetime import date

from mnemos.application.clock import today
from mnemos.domain.ports import CardRepository
from mnemos.domain.stats import StudyStats

from .metrics_calculator import compute_retention, compute_stats

logger = logging.getLogger(__name__)


class StudyStatsService:
    """Application service for collection statistics."""

    def __init__(self, repo: CardRepository):
        self._repo = repo

    async def get_stats(self, as_of: date | None = None) -> StudyStats:
        cards = await self._repo.load_cards()
        return compute_stats(cards, as_of or today())

    async def get_retention(self) -> float:
        cards = await self._repo.load_cards()
        return compute_retention(cards)

    async def refresh_cached_stats(self, as_of: date | None = None) -> StudyStats:
        """
        Recompute stats and store them as the collection's cached snapshot.

        Returns:
            The freshly computed StudyStats.
        """
        stats = await self.get_stats(as_of)
        await self._repo.save_stats(stats)
        logger.debug(f"Cached stats refreshed: {stats.total} cards, {stats.due_today} due")
        return stats
