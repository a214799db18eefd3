from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILES = (
    Path(".config/studylab/config.toml"),
    Path(".studylab.toml"),
)


def _home_config_files() -> list[Path]:
    return [Path.home() / f for f in CONFIG_FILES]


class AppConfig(BaseSettings):
    """
    Configuration model for studylab.
    Supports loading from:
    1. Config file (~/.config/studylab/config.toml or ~/.studylab.toml)
    2. Environment variables (STUDYLAB_*)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDYLAB_",
        extra="ignore",
    )

    # Storage
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: Path = Field(
        default_factory=lambda: Path.home() / ".config/studylab/studylab.db"
    )

    # Presentation
    locale: Literal["en", "it"] = "en"

    # Logging
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/studylab/logs")
    verbose: int = 1

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

        # First existing file wins; sources earlier in the tuple take priority
        toml_file = next((f for f in _home_config_files() if f.exists()), None)

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

    @field_validator("db_path", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/studylab/config.toml (if exists)
    3. Environment variables (STUDYLAB_*)
    4. cli_overrides (passed from Typer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
