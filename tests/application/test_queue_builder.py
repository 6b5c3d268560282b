from datetime import date, timedelta

import pytest

from mnemos.application.queue_builder import (
    build_queue,
    get_new_cards,
    is_due,
    plan_queue,
    select_due,
    sort_study_queue,
)
from mnemos.domain.errors import MalformedState
from mnemos.domain.models import CardState, SessionSettings

AS_OF = date(2026, 3, 10)
YESTERDAY = AS_OF - timedelta(days=1)
TOMORROW = AS_OF + timedelta(days=1)


def ids(cards):
    return [c.id for c in cards]


@pytest.fixture
def review(make_card):
    def _review(card_id, due, ease=2.5):
        return make_card(
            card_id,
            state=CardState.REVIEW,
            interval=5,
            repetitions=2,
            ease_factor=ease,
            due_date=due,
        )

    return _review


@pytest.fixture
def learning(make_card):
    def _learning(card_id, step=0):
        return make_card(card_id, state=CardState.LEARNING, learning_step=step, due_date=AS_OF)

    return _learning


# --- Eligibility ---


def test_new_and_learning_cards_are_always_due(make_card, learning):
    cards = [make_card("n1"), learning("l1"), learning("l2", step=1)]
    assert ids(select_due(cards, AS_OF)) == ["n1", "l1", "l2"]


def test_review_cards_due_on_or_before_as_of(review):
    cards = [review("past", YESTERDAY), review("today", AS_OF), review("future", TOMORROW)]
    assert ids(select_due(cards, AS_OF)) == ["past", "today"]


def test_future_review_becomes_due_later(review):
    card = review("future", AS_OF + timedelta(days=10))
    assert not is_due(card, AS_OF)
    assert is_due(card, AS_OF + timedelta(days=10))


def test_review_without_due_date_is_malformed(make_card):
    broken = make_card("broken", state=CardState.REVIEW, interval=3, repetitions=1)
    with pytest.raises(MalformedState) as exc:
        select_due([broken], AS_OF)
    assert exc.value.card_id == "broken"


def test_get_new_cards_respects_limit_and_order(make_card, learning):
    cards = [make_card("n1"), learning("l1"), make_card("n2"), make_card("n3")]
    assert ids(get_new_cards(cards, 2)) == ["n1", "n2"]
    assert ids(get_new_cards(cards, 10)) == ["n1", "n2", "n3"]


# --- Ordering ---


def test_overdue_then_due_today_then_new(make_card, review):
    cards = [make_card("new"), review("due-today", AS_OF), review("overdue", YESTERDAY)]
    queue = build_queue(cards, AS_OF, SessionSettings())
    assert ids(queue) == ["overdue", "due-today", "new"]


def test_full_category_order(make_card, review, learning):
    cards = [
        make_card("new"),
        learning("learn"),
        review("due-today", AS_OF),
        review("overdue", YESTERDAY),
    ]
    queue = build_queue(cards, AS_OF, SessionSettings())
    assert ids(queue) == ["overdue", "due-today", "learn", "new"]


def test_overdue_sorted_by_due_date_regardless_of_ease(review):
    cards = [
        review("b", AS_OF - timedelta(days=1), ease=1.3),
        review("a", AS_OF - timedelta(days=3), ease=2.9),
        review("c", AS_OF - timedelta(days=2), ease=2.0),
    ]
    assert ids(sort_study_queue(cards, AS_OF)) == ["a", "c", "b"]


def test_due_today_sorted_by_ease_ascending(review):
    cards = [review("easy", AS_OF, 2.8), review("hard", AS_OF, 1.3), review("mid", AS_OF, 2.1)]
    assert ids(sort_study_queue(cards, AS_OF)) == ["hard", "mid", "easy"]


def test_learning_sorted_by_step(learning):
    cards = [learning("s1", step=1), learning("s0", step=0)]
    assert ids(sort_study_queue(cards, AS_OF)) == ["s0", "s1"]


def test_new_cards_keep_creation_order(make_card):
    cards = [make_card("n3"), make_card("n1"), make_card("n2")]
    assert ids(sort_study_queue(cards, AS_OF)) == ["n3", "n1", "n2"]


def test_ties_keep_input_order(review):
    cards = [review("first", YESTERDAY), review("second", YESTERDAY), review("third", YESTERDAY)]
    assert ids(sort_study_queue(cards, AS_OF)) == ["first", "second", "third"]


def test_sort_drops_reviews_not_yet_due(review):
    cards = [review("future", TOMORROW), review("today", AS_OF)]
    assert ids(sort_study_queue(cards, AS_OF)) == ["today"]


# --- Daily budgets ---


def test_new_card_cap(make_card):
    cards = [make_card(f"n{i}") for i in range(5)]
    result = plan_queue(cards, AS_OF, SessionSettings(new_cards_per_day=2))

    assert ids(result.queue) == ["n0", "n1"]
    assert result.deferred_new == 3
    assert result.deferred_reviews == 0


def test_zero_new_cards_per_day(make_card, review):
    cards = [make_card("n1"), review("r1", AS_OF)]
    queue = build_queue(cards, AS_OF, SessionSettings(new_cards_per_day=0))
    assert ids(queue) == ["r1"]


def test_review_cap_covers_learning_and_review(review, learning):
    cards = [learning("l1"), review("r1", YESTERDAY), review("r2", AS_OF)]
    result = plan_queue(cards, AS_OF, SessionSettings(reviews_per_day=2))

    # cap taken in input order, then sorted
    assert ids(result.queue) == ["r1", "l1"]
    assert result.deferred_reviews == 1


def test_caps_do_not_count_future_reviews(make_card, review):
    cards = [review("future", TOMORROW), review("r1", AS_OF), make_card("n1")]
    result = plan_queue(cards, AS_OF, SessionSettings(reviews_per_day=1, new_cards_per_day=1))

    assert ids(result.queue) == ["r1", "n1"]
    assert result.deferred_reviews == 0


def test_plan_queue_reports_categories(make_card, review, learning):
    cards = [make_card("n"), learning("l"), review("t", AS_OF), review("o", YESTERDAY)]
    result = plan_queue(cards, AS_OF, SessionSettings())

    assert ids(result.overdue) == ["o"]
    assert ids(result.due_today) == ["t"]
    assert ids(result.learning) == ["l"]
    assert ids(result.new) == ["n"]


# --- Purity ---


def test_build_queue_is_idempotent_and_leaves_input_alone(make_card, review, learning):
    cards = [
        make_card("n1"),
        review("r-today", AS_OF, 2.1),
        learning("l1", step=1),
        review("r-old", AS_OF - timedelta(days=4)),
        make_card("n2"),
    ]
    snapshot = list(cards)
    settings = SessionSettings(new_cards_per_day=1)

    first = build_queue(cards, AS_OF, settings)
    second = build_queue(cards, AS_OF, settings)

    assert ids(first) == ids(second) == ["r-old", "r-today", "l1", "n1"]
    assert cards == snapshot


def test_empty_input():
    assert build_queue([], AS_OF, SessionSettings()) == []
    assert select_due([], AS_OF) == []
