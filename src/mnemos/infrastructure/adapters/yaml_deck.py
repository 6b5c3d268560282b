"""
YAML deck repository: infrastructure adapter for single-file decks.

Implements CardRepository over a YAML document of the form:

    settings: {learning_steps: [1, 10], new_cards_per_day: 20, ...}
    cards:
      - id: ...
        content: {front: ..., back: ...}
        scheduling: {state: review, interval: 6, ...}
    stats: {...}   # cached snapshot, rewritten by the stats service
"""

import asyncio
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mnemos.domain.errors import CardNotFound, MalformedState, StaleStateError
from mnemos.domain.models import Card, SchedulingState, SessionSettings
from mnemos.domain.ports import CardRepository
from mnemos.domain.stats import StudyStats

logger = logging.getLogger(__name__)


class YamlDeckRepository(CardRepository):
    """
    Reads and writes one deck file.

    Every write re-reads the file under a lock, checks the stored history
    length against the incoming state (optimistic versioning), then replaces
    the file atomically.
    """

    def __init__(self, path: Path, settings_defaults: SessionSettings | None = None):
        self.path = Path(path)
        self._defaults = settings_defaults
        self._lock = asyncio.Lock()

    # ---------- Reads ----------

    async def load_cards(self) -> list[Card]:
        doc = self._read()
        starting_ease = self._settings_from(doc).starting_ease
        return [self._parse_card(raw, i, starting_ease) for i, raw in enumerate(doc["cards"])]

    async def get_card(self, card_id: str) -> Card:
        for card in await self.load_cards():
            if card.id == card_id:
                return card
        raise CardNotFound(card_id)

    async def load_settings(self) -> SessionSettings | None:
        doc = self._read()
        if not doc.get("settings") and self._defaults is None:
            return None
        return self._settings_from(doc)

    # ---------- Writes ----------

    async def save_scheduling(self, card_id: str, state: SchedulingState) -> Card:
        async with self._lock:
            doc = self._read()
            starting_ease = self._settings_from(doc).starting_ease

            for i, raw in enumerate(doc["cards"]):
                if not isinstance(raw, dict) or str(raw.get("id")) != card_id:
                    continue

                stored = self._parse_card(raw, i, starting_ease)
                if len(stored.scheduling.history) != len(state.history) - 1:
                    raise StaleStateError(
                        f"card {card_id}: stored history has "
                        f"{len(stored.scheduling.history)} reviews, update expects "
                        f"{len(state.history) - 1}"
                    )

                raw["scheduling"] = state.to_record()
                self._write(doc)
                logger.info(f"Saved scheduling for {card_id} ({state.state.value})")
                return stored.with_scheduling(state)

        raise CardNotFound(card_id)

    async def save_stats(self, stats: StudyStats) -> None:
        async with self._lock:
            doc = self._read()
            doc["stats"] = stats.to_record()
            self._write(doc)

    # ---------- Helpers ----------

    def _read(self) -> dict[str, Any]:
        text = self.path.read_text(encoding="utf-8")
        try:
            doc = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise MalformedState(f"{self.path}: invalid YAML: {e}") from e

        if not isinstance(doc, dict):
            raise MalformedState(f"{self.path}: top level must be a mapping")
        cards = doc.setdefault("cards", [])
        if not isinstance(cards, list):
            raise MalformedState(f"{self.path}: 'cards' must be a list")
        return doc

    def _write(self, doc: dict[str, Any]) -> None:
        text = yaml.safe_dump(
            doc,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            if self.path.exists():
                os.chmod(tmp, stat.S_IMODE(self.path.stat().st_mode))
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _settings_from(self, doc: dict[str, Any]) -> SessionSettings:
        block = doc.get("settings") or {}
        if not isinstance(block, dict):
            raise MalformedState(f"{self.path}: 'settings' must be a mapping")
        base = self._defaults.model_dump() if self._defaults else {}
        base.update(block)
        try:
            return SessionSettings.model_validate(base)
        except ValidationError as e:
            raise MalformedState(f"{self.path}: invalid settings: {e}") from e

    def _parse_card(self, raw: Any, index: int, starting_ease: float) -> Card:
        if not isinstance(raw, dict) or not raw.get("id"):
            raise MalformedState(f"{self.path}: card #{index + 1} has no id")

        try:
            return Card.from_record(raw, starting_ease)
        except MalformedState:
            logger.warning(f"Invalid card record {raw['id']} in {self.path}")
            raise
