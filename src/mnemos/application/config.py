from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from mnemos.domain.constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_EASY_INTERVAL,
    DEFAULT_GRADUATING_INTERVAL,
    DEFAULT_LEARNING_STEPS,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEWS_PER_DAY,
    MIN_EASE_FACTOR,
)
from mnemos.domain.models import SessionSettings


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/mnemos/config.toml",
        Path.home() / ".mnemos.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for mnemos.
    Supports loading from:
    1. Environment variables (MNEMOS_*)
    2. Config file (~/.config/mnemos/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="MNEMOS_",
        extra="ignore",
    )

    # Paths
    deck_path: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/mnemos/logs")

    # Scheduling defaults (a deck's own settings block overrides these)
    learning_steps: list[int] = Field(default_factory=lambda: list(DEFAULT_LEARNING_STEPS))
    graduating_interval: int = Field(default=DEFAULT_GRADUATING_INTERVAL, ge=1)
    easy_interval: int = Field(default=DEFAULT_EASY_INTERVAL, ge=1)
    new_cards_per_day: int = Field(default=DEFAULT_NEW_CARDS_PER_DAY, ge=0)
    reviews_per_day: int = Field(default=DEFAULT_REVIEWS_PER_DAY, ge=0)
    starting_ease: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)

    # Fuzz
    fuzz: bool = True
    seed: int | None = None

    # 0 warnings only, 1 info, 2+ debug
    verbose: int = Field(default=1, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Init (CLI overrides) first: earlier sources take priority
        toml_file = next((f for f in config_files() if f.exists()), None)
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("learning_steps")
    @classmethod
    def require_learning_steps(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("learning_steps must contain at least one step")
        if any(step <= 0 for step in v):
            raise ValueError("learning_steps must be positive")
        return v

    @field_validator("deck_path", mode="before")
    @classmethod
    def resolve_deck_path(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    def session_settings(self, overrides: dict[str, Any] | None = None) -> SessionSettings:
        """
        Build SessionSettings from the configured defaults.

        Args:
            overrides: A deck's own settings block; its keys win.
        """
        base = {
            "learning_steps": tuple(self.learning_steps),
            "graduating_interval": self.graduating_interval,
            "easy_interval": self.easy_interval,
            "new_cards_per_day": self.new_cards_per_day,
            "reviews_per_day": self.reviews_per_day,
            "starting_ease": self.starting_ease,
        }
        base.update(overrides or {})
        return SessionSettings.model_validate(base)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/mnemos/config.toml (if exists)
    3. Environment variables (MNEMOS_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not set
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
