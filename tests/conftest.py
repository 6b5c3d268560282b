from datetime import date, datetime, timezone

import pytest
import yaml

from mnemos.domain.models import Card, SchedulingState

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_card():
    """Factory for cards with the given scheduling fields."""

    def _make(card_id: str = "c1", **scheduling) -> Card:
        return Card(
            id=card_id,
            content={"front": f"Question {card_id}", "back": "Answer"},
            scheduling=SchedulingState(**scheduling),
        )

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    env_vars = (
        "MNEMOS_DECK_PATH",
        "MNEMOS_SEED",
        "MNEMOS_FUZZ",
        "MNEMOS_NEW_CARDS_PER_DAY",
        "MNEMOS_VERBOSE",
    )
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def deck_file(tmp_path):
    """A small deck: one overdue review, one due-today review, one learning, two new."""
    doc = {
        "settings": {"learning_steps": [1, 10], "new_cards_per_day": 20},
        "cards": [
            {
                "id": "new-1",
                "content": {"front": "What is SM-2?", "back": "A scheduling algorithm"},
            },
            {
                "id": "rev-today",
                "content": {"front": "Due today"},
                "scheduling": {
                    "state": "review",
                    "interval": 6,
                    "ease_factor": 2.5,
                    "repetitions": 2,
                    "due_date": "2026-03-10",
                },
            },
            {
                "id": "learn-1",
                "content": {"front": "Learning"},
                "scheduling": {"state": "learning", "learning_step": 1, "due_date": "2026-03-10"},
            },
            {
                "id": "rev-overdue",
                "content": {"front": "Overdue"},
                "scheduling": {
                    "state": "review",
                    "interval": 10,
                    "ease_factor": 2.3,
                    "repetitions": 3,
                    "due_date": "2026-03-01",
                    "last_review": "2026-02-19T08:00:00+00:00",
                    "history": [
                        {
                            "timestamp": "2026-01-10T08:00:00+00:00",
                            "quality": 0,
                            "interval": 3,
                            "ease_factor": 2.5,
                        },
                        {
                            "timestamp": "2026-02-19T08:00:00+00:00",
                            "quality": 2,
                            "interval": 4,
                            "ease_factor": 2.3,
                        },
                    ],
                },
            },
            {"id": "new-2", "content": {"front": "Second new card"}},
        ],
    }
    path = tmp_path / "deck.yaml"
    path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
    return path
