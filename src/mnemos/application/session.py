"""
Study session driver.

Walks a queue built at session start, applies ratings through the interval
engine, and writes each result back through the repository. Cards rated
Again are re-appended to the end of the live queue.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from mnemos.application.clock import today, utc_now
from mnemos.application.queue_builder import plan_queue
from mnemos.application.scheduler import Scheduler
from mnemos.application.stats.service import StudyStatsService
from mnemos.domain.constants import PASSING_QUALITY
from mnemos.domain.errors import SchedulingError
from mnemos.domain.models import Card, Quality, SchedulingState
from mnemos.domain.ports import CardRepository
from mnemos.domain.stats import StudyStats

logger = logging.getLogger(__name__)


@dataclass
class StudySession:
    queue: list[Card]
    started_at: datetime
    current_index: int = 0
    reviewed: int = 0
    correct: int = 0
    deferred_new: int = 0
    deferred_reviews: int = 0
    requeued: list[str] = field(default_factory=list)  # ids re-appended after Again

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.queue)

    @property
    def current(self) -> Card | None:
        if self.is_complete:
            return None
        return self.queue[self.current_index]

    @property
    def remaining(self) -> int:
        return len(self.queue) - self.current_index


class StudyService:
    """
    Application service driving one collection's study sessions.

    Args:
        repo: The repository (port) holding the collection.
        scheduler: Optional interval engine; built from the collection's
            settings when not provided.
    """

    def __init__(self, repo: CardRepository, scheduler: Scheduler | None = None):
        self._repo = repo
        self._scheduler = scheduler

    async def scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = Scheduler(await self._repo.load_settings())
        return self._scheduler

    async def start_session(self, as_of: date | None = None) -> StudySession:
        scheduler = await self.scheduler()
        cards = await self._repo.load_cards()
        result = plan_queue(cards, as_of or today(), scheduler.settings)
        logger.info(
            f"Session started with {len(result.queue)} cards "
            f"({len(result.new)} new, {len(result.queue) - len(result.new)} review/learning)"
        )
        return StudySession(
            queue=result.queue,
            started_at=utc_now(),
            deferred_new=result.deferred_new,
            deferred_reviews=result.deferred_reviews,
        )

    async def estimates(
        self, session: StudySession, now: datetime | None = None
    ) -> dict[Quality, str]:
        card = _require_current(session)
        scheduler = await self.scheduler()
        return scheduler.estimates(card.scheduling, now)

    async def rate(
        self,
        session: StudySession,
        quality: Any,
        now: datetime | None = None,
    ) -> SchedulingState:
        """
        Rate the current card, persist the result and advance the session.

        Raises:
            InvalidInput: bad quality; the session is left untouched.
            StaleStateError: the card changed underneath this session.
        """
        card = _require_current(session)
        scheduler = await self.scheduler()
        quality = Quality.parse(quality)

        updated_state = scheduler.review(card.scheduling, quality, now)
        updated_card = await self._repo.save_scheduling(card.id, updated_state)

        session.reviewed += 1
        if quality >= PASSING_QUALITY:
            session.correct += 1
        if quality is Quality.AGAIN:
            session.queue.append(updated_card)
            session.requeued.append(card.id)
        session.current_index += 1

        return updated_state

    async def finish(self, session: StudySession, as_of: date | None = None) -> StudyStats:
        """Refresh the collection's cached stats at the end of a session."""
        stats = await StudyStatsService(self._repo).refresh_cached_stats(as_of)
        logger.info(f"Session finished: {session.reviewed} reviewed, {session.correct} correct")
        return stats


def _require_current(session: StudySession) -> Card:
    card = session.current
    if card is None:
        raise SchedulingError("study session is already complete")
    return card
