"""Centralized constants for the scheduling engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Ease factor ----------
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
LAPSE_EASE_PENALTY = 0.2

# ---------- Intervals ----------
LAPSE_INTERVAL_MULTIPLIER = 0.5
HARD_INTERVAL_MULTIPLIER = 0.8
EASY_INTERVAL_MULTIPLIER = 1.3
FIRST_REVIEW_INTERVAL = 1
SECOND_REVIEW_INTERVAL = 6
MIN_INTERVAL = 1

# ---------- Fuzz ----------
FUZZ_THRESHOLD_DAYS = 7  # intervals above this get fuzzed
FUZZ_RATIO = 0.05

# ---------- Session defaults ----------
DEFAULT_LEARNING_STEPS = (1, 10)
DEFAULT_GRADUATING_INTERVAL = 1  # days
DEFAULT_EASY_INTERVAL = 4  # days
DEFAULT_NEW_CARDS_PER_DAY = 20
DEFAULT_REVIEWS_PER_DAY = 200

# ---------- Stats ----------
PASSING_QUALITY = 2  # Good or better counts as a successful recall
