"""
Queue builder for daily study sessions.

Builds ordered study queues by:
1. Selecting cards that are due on the reference date
2. Applying the daily new-card and review budgets
3. Ordering overdue > due today > learning > new
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from mnemos.domain.models import Card, CardState, SessionSettings

logger = logging.getLogger(__name__)


@dataclass
class QueueBuildResult:
    """Result of queue building operation."""

    queue: list[Card]  # Final session order
    overdue: list[Card] = field(default_factory=list)  # Review, due before as_of
    due_today: list[Card] = field(default_factory=list)  # Review, due on as_of
    learning: list[Card] = field(default_factory=list)
    new: list[Card] = field(default_factory=list)
    deferred_new: int = 0  # Eligible new cards held back by new_cards_per_day
    deferred_reviews: int = 0  # Eligible review/learning cards held back by reviews_per_day


def is_due(card: Card, as_of: date) -> bool:
    """New and Learning cards are always due; Review cards once their date arrives."""
    sr = card.scheduling
    if sr.state in (CardState.NEW, CardState.LEARNING):
        return True
    sr.check_integrity(card.id)
    return sr.due_date <= as_of


def select_due(cards: list[Card], as_of: date) -> list[Card]:
    """
    Cards eligible for study on `as_of`, in input order.

    Raises:
        MalformedState: a Review card has no due date.
    """
    return [card for card in cards if is_due(card, as_of)]


def get_new_cards(cards: list[Card], limit: int) -> list[Card]:
    """The first `limit` New cards, in input (creation) order."""
    return [c for c in cards if c.scheduling.state is CardState.NEW][:limit]


def sort_study_queue(cards: list[Card], as_of: date) -> list[Card]:
    """
    Order due cards for study.

    Review cards due after `as_of` fall into no category and are dropped.
    """
    return _categorize(cards, as_of).queue


def _categorize(cards: list[Card], as_of: date) -> QueueBuildResult:
    overdue: list[Card] = []
    due_today: list[Card] = []
    learning: list[Card] = []
    new: list[Card] = []

    for card in cards:
        sr = card.scheduling
        if sr.state is CardState.NEW:
            new.append(card)
        elif sr.state is CardState.LEARNING:
            learning.append(card)
        else:
            sr.check_integrity(card.id)
            if sr.due_date < as_of:
                overdue.append(card)
            elif sr.due_date == as_of:
                due_today.append(card)

    # list.sort is stable: ties keep their input order
    overdue.sort(key=lambda c: c.scheduling.due_date)
    due_today.sort(key=lambda c: c.scheduling.ease_factor)
    learning.sort(key=lambda c: c.scheduling.learning_step)

    return QueueBuildResult(
        queue=overdue + due_today + learning + new,
        overdue=overdue,
        due_today=due_today,
        learning=learning,
        new=new,
    )


def plan_queue(cards: list[Card], as_of: date, settings: SessionSettings) -> QueueBuildResult:
    """
    Build the session queue and report what the daily budgets held back.

    Args:
        cards: Every card of the collection, in creation order.
        as_of: Reference date for due checks.
        settings: Supplies new_cards_per_day and reviews_per_day.

    Returns:
        QueueBuildResult with the ordered queue, its categories and the
        number of cards deferred by each cap.
    """
    due = select_due(cards, as_of)

    due_new = [c for c in due if c.scheduling.state is CardState.NEW]
    due_reviews = [c for c in due if c.scheduling.state is not CardState.NEW]

    new_cards = due_new[: settings.new_cards_per_day]
    review_cards = due_reviews[: settings.reviews_per_day]

    deferred_new = len(due_new) - len(new_cards)
    deferred_reviews = len(due_reviews) - len(review_cards)
    if deferred_new or deferred_reviews:
        logger.debug(
            f"Daily caps deferred {deferred_new} new and {deferred_reviews} review cards"
        )

    result = _categorize(review_cards + new_cards, as_of)
    result.deferred_new = deferred_new
    result.deferred_reviews = deferred_reviews
    return result


def build_queue(cards: list[Card], as_of: date, settings: SessionSettings) -> list[Card]:
    """Ordered session queue for `as_of`, within the daily budgets."""
    return plan_queue(cards, as_of, settings).queue
