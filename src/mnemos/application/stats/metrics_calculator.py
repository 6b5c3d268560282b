"""
Metrics calculator for summarizing a collection.

This is a pure computation module with no I/O.
"""

from datetime import date

from mnemos.domain.constants import DEFAULT_EASE_FACTOR, PASSING_QUALITY
from mnemos.domain.models import Card, CardState
from mnemos.domain.stats import StudyStats


def compute_stats(cards: list[Card], as_of: date) -> StudyStats:
    """
    Count cards per state and how many are due on `as_of`.

    New and Learning cards always count as due today.
    """
    new_count = 0
    learning_count = 0
    review_count = 0
    due_today = 0
    total_ease = 0.0
    last_studied = None

    for card in cards:
        sr = card.scheduling
        total_ease += sr.ease_factor

        if sr.state is CardState.NEW:
            new_count += 1
            due_today += 1
        elif sr.state is CardState.LEARNING:
            learning_count += 1
            due_today += 1
        else:
            review_count += 1
            sr.check_integrity(card.id)
            if sr.due_date <= as_of:
                due_today += 1

        if sr.last_review and (last_studied is None or sr.last_review > last_studied):
            last_studied = sr.last_review

    return StudyStats(
        total=len(cards),
        new_count=new_count,
        learning_count=learning_count,
        review_count=review_count,
        due_today=due_today,
        average_ease=total_ease / len(cards) if cards else DEFAULT_EASE_FACTOR,
        last_studied=last_studied,
    )


def compute_retention(cards: list[Card]) -> float:
    """
    Percentage of all recorded ratings that were Good or Easy.

    Returns 0.0 when no card has any history.
    """
    total = 0
    correct = 0
    for card in cards:
        for record in card.scheduling.history:
            total += 1
            if record.quality >= PASSING_QUALITY:
                correct += 1

    if total == 0:
        return 0.0
    return correct / total * 100
