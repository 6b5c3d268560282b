"""
Interval engine: the SM-2 card state machine.

Turns a quality rating into the next SchedulingState:
1. Append a history record holding the pre-update interval and ease
2. New/Learning cards walk the learning-step ladder or graduate
3. Review cards grow geometrically by ease factor, or lapse back to Learning

Pure computation; the only nondeterminism is the injected fuzz source.
"""

import logging
import math
import random
from datetime import date, datetime
from typing import Any, Protocol

from mnemos.application.clock import add_days, utc_now
from mnemos.domain.constants import (
    EASY_INTERVAL_MULTIPLIER,
    FIRST_REVIEW_INTERVAL,
    FUZZ_RATIO,
    FUZZ_THRESHOLD_DAYS,
    HARD_INTERVAL_MULTIPLIER,
    LAPSE_EASE_PENALTY,
    LAPSE_INTERVAL_MULTIPLIER,
    MIN_EASE_FACTOR,
    MIN_INTERVAL,
    SECOND_REVIEW_INTERVAL,
)
from mnemos.domain.errors import InvalidInput
from mnemos.domain.models import (
    CardState,
    Quality,
    ReviewRecord,
    SchedulingState,
    SessionSettings,
)

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything with `random() -> float` in [0, 1), e.g. `random.Random`."""

    def random(self) -> float: ...


def round_half_up(value: float) -> int:
    """Round x.5 upward (toward +inf), unlike the built-in banker's round()."""
    return math.floor(value + 0.5)


def apply_fuzz(interval: int, rng: RandomSource | None) -> int:
    """
    Perturb intervals longer than a week by up to +/-5%.

    With no random source the interval is returned unchanged.
    """
    if rng is None or interval <= FUZZ_THRESHOLD_DAYS:
        return interval
    fuzz = interval * FUZZ_RATIO
    return round_half_up(interval + (rng.random() * 2 - 1) * fuzz)


def next_ease_factor(ease_factor: float, quality: Quality) -> float:
    """
    SM-2 ease update, floored at MIN_EASE_FACTOR.

    EF' = EF + (0.1 - (3 - q) * (0.08 + (3 - q) * 0.02))
    """
    miss = 3 - int(quality)
    delta = 0.1 - miss * (0.08 + miss * 0.02)
    return max(MIN_EASE_FACTOR, ease_factor + delta)


def compute_next_review(
    state: SchedulingState,
    quality: Any,
    settings: SessionSettings,
    now: datetime,
    rng: RandomSource | None = None,
) -> SchedulingState:
    """
    Compute the scheduling state that follows a rating.

    Args:
        state: Current scheduling state (left untouched).
        quality: Rating 0-3 (Again, Hard, Good, Easy).
        settings: Collection settings (learning steps, graduation intervals).
        now: Time of the rating; its calendar date is "today".
        rng: Fuzz source. None disables fuzz.

    Returns:
        A new SchedulingState with one more history record.

    Raises:
        InvalidInput: quality outside 0-3, or no learning steps configured.
        MalformedState: the state is missing data its card state requires.
    """
    quality = Quality.parse(quality)
    if not settings.learning_steps:
        raise InvalidInput("settings.learning_steps must not be empty")
    state.check_integrity()

    record = ReviewRecord(
        timestamp=now,
        quality=quality,
        interval=state.interval,
        ease_factor=state.ease_factor,
    )
    today = now.date()

    if state.state is CardState.REVIEW:
        changes = _review_transition(state, quality, today, rng)
    else:
        changes = _learning_transition(state, quality, settings, today)

    changes["history"] = state.history + (record,)
    changes["last_review"] = now
    return state.model_copy(update=changes)


def _learning_transition(
    state: SchedulingState,
    quality: Quality,
    settings: SessionSettings,
    today: date,
) -> dict[str, Any]:
    if quality is Quality.AGAIN:
        return {
            "state": CardState.LEARNING,
            "learning_step": 0,
            "repetitions": 0,
            "due_date": today,
        }

    if quality is Quality.EASY:
        return _graduate(settings.easy_interval, today)

    next_step = state.learning_step + 1
    if next_step >= len(settings.learning_steps):
        return _graduate(settings.graduating_interval, today)

    return {
        "state": CardState.LEARNING,
        "learning_step": next_step,
        "due_date": today,
    }


def _graduate(interval: int, today: date) -> dict[str, Any]:
    logger.debug(f"Graduating card to review with interval {interval}d")
    return {
        "state": CardState.REVIEW,
        "interval": interval,
        "due_date": add_days(today, interval),
        "repetitions": 1,
        "learning_step": 0,
    }


def _review_transition(
    state: SchedulingState,
    quality: Quality,
    today: date,
    rng: RandomSource | None,
) -> dict[str, Any]:
    if quality is Quality.AGAIN:
        interval = max(MIN_INTERVAL, round_half_up(state.interval * LAPSE_INTERVAL_MULTIPLIER))
        logger.debug(f"Lapse: interval {state.interval}d -> {interval}d, back to learning")
        return {
            "state": CardState.LEARNING,
            "learning_step": 0,
            "repetitions": 0,
            "ease_factor": max(MIN_EASE_FACTOR, state.ease_factor - LAPSE_EASE_PENALTY),
            "interval": interval,
            "due_date": today,
        }

    ease_factor = next_ease_factor(state.ease_factor, quality)

    if state.repetitions == 0:
        interval = FIRST_REVIEW_INTERVAL
    elif state.repetitions == 1:
        interval = SECOND_REVIEW_INTERVAL
    else:
        interval = round_half_up(state.interval * ease_factor)

    if quality is Quality.HARD:
        interval = round_half_up(interval * HARD_INTERVAL_MULTIPLIER)
    elif quality is Quality.EASY:
        interval = round_half_up(interval * EASY_INTERVAL_MULTIPLIER)

    interval = max(MIN_INTERVAL, apply_fuzz(interval, rng))

    return {
        "ease_factor": ease_factor,
        "interval": interval,
        "due_date": add_days(today, interval),
        "repetitions": state.repetitions + 1,
    }


def preview_reviews(
    state: SchedulingState,
    settings: SessionSettings,
    now: datetime,
) -> dict[Quality, SchedulingState]:
    """Outcome of every possible rating, unfuzzed and unpersisted."""
    return {q: compute_next_review(state, q, settings, now) for q in Quality}


def format_interval(interval: int, state: CardState) -> str:
    """Short human-readable interval, e.g. '< 1d', '12d', '3mo', '1.4y'."""
    if state is CardState.LEARNING or interval == 0:
        return "< 1d"
    if interval == 1:
        return "1d"
    if interval < 30:
        return f"{interval}d"
    if interval < 365:
        return f"{round_half_up(interval / 30)}mo"
    return f"{interval / 365:.1f}y"


def estimate_intervals(
    state: SchedulingState,
    settings: SessionSettings,
    now: datetime,
) -> dict[Quality, str]:
    """Display strings for the interval each rating would produce."""
    return {
        q: format_interval(result.interval, result.state)
        for q, result in preview_reviews(state, settings, now).items()
    }


class Scheduler:
    """
    Interval engine bound to one collection's settings and fuzz source.

    Args:
        settings: Collection settings; defaults apply when omitted.
        rng: Explicit fuzz source. Takes precedence over `seed`.
        fuzz: When False, no fuzz is applied at all.
        seed: Seed for a private `random.Random` when `rng` is not given.
    """

    def __init__(
        self,
        settings: SessionSettings | None = None,
        rng: RandomSource | None = None,
        fuzz: bool = True,
        seed: int | None = None,
    ):
        self.settings = settings or SessionSettings()
        if not fuzz:
            self._rng = None
        else:
            self._rng = rng if rng is not None else random.Random(seed)

    def review(
        self,
        state: SchedulingState,
        quality: Any,
        now: datetime | None = None,
    ) -> SchedulingState:
        return compute_next_review(state, quality, self.settings, now or utc_now(), self._rng)

    def estimates(self, state: SchedulingState, now: datetime | None = None) -> dict[Quality, str]:
        return estimate_intervals(state, self.settings, now or utc_now())
