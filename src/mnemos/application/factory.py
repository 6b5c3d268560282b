"""
Repository Factory
Centralizes wiring of repositories and schedulers from configuration.
"""

from pathlib import Path

from mnemos.application.config import AppConfig
from mnemos.application.scheduler import Scheduler
from mnemos.domain.models import SessionSettings
from mnemos.domain.ports import CardRepository
from mnemos.infrastructure.adapters.yaml_deck import YamlDeckRepository


def get_card_repository(config: AppConfig, deck: Path | None = None) -> CardRepository:
    """
    Returns the repository for a deck file.

    The configured scheduling defaults apply wherever the deck's own
    settings block is silent.
    """
    path = deck or config.deck_path
    if path is None:
        raise ValueError("No deck given. Pass a deck path or set MNEMOS_DECK_PATH.")
    return YamlDeckRepository(Path(path), settings_defaults=config.session_settings())


def get_scheduler(config: AppConfig, settings: SessionSettings | None = None) -> Scheduler:
    """Returns an interval engine honoring the configured fuzz options."""
    return Scheduler(
        settings or config.session_settings(),
        fuzz=config.fuzz,
        seed=config.seed,
    )
