"""mnemos: SM-2 spaced-repetition scheduling engine."""

from mnemos.consts import VERSION

__version__ = VERSION
