"""Configuration settings using pydantic-settings."""

from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, YamlConfigSettingsSource

from mobibatch.config.constants import (
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_CONFIG_FILE,
    DEFAULT_KINDLEGEN,
    DEFAULT_LOG_DIR,
    MAX_COMPRESSION_LEVEL,
)
from mobibatch.exceptions import ConfigurationError


class EngineConfig(BaseModel):
    """Immutable snapshot read by every converter during one batch."""

    model_config = ConfigDict(frozen=True)

    delete_input: bool = False  # Delete source once its destination exists
    overwrite: bool = False
    compression_level: int = Field(
        default=DEFAULT_COMPRESSION_LEVEL, ge=0, le=MAX_COMPRESSION_LEVEL
    )
    verbose: bool = False  # Pass -verbose to kindlegen
    kindlegen_path: str = DEFAULT_KINDLEGEN
    max_workers: int | None = Field(default=None, ge=1)  # None = one thread per job


class MobiBatchSettings(BaseSettings):
    """Main configuration class for mobibatch."""

    model_config = SettingsConfigDict(
        env_prefix="MOBIBATCH_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        """Customize settings sources to include YAML file."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=DEFAULT_CONFIG_FILE),
            file_secret_settings,
        )

    # Compiler
    kindlegen_path: str = DEFAULT_KINDLEGEN
    compression_level: int = Field(
        default=DEFAULT_COMPRESSION_LEVEL, ge=0, le=MAX_COMPRESSION_LEVEL
    )
    verbose: bool = False

    # Batch behaviour
    delete_input: bool = False
    overwrite: bool = False
    max_workers: int | None = Field(default=None, ge=1)

    # Global settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_dir: str = DEFAULT_LOG_DIR

    def to_engine_config(self, **overrides: Any) -> EngineConfig:
        """Build the engine snapshot, letting CLI flags override settings.

        Overrides whose value is None are ignored so unset CLI options fall
        back to the configured value.
        """
        values = {
            "delete_input": self.delete_input,
            "overwrite": self.overwrite,
            "compression_level": self.compression_level,
            "verbose": self.verbose,
            "kindlegen_path": self.kindlegen_path,
            "max_workers": self.max_workers,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return EngineConfig(**values)


@lru_cache
def get_settings() -> MobiBatchSettings:
    """Get cached settings instance.

    Raises:
        ConfigurationError: If the environment or mobibatch.yaml holds invalid values
    """
    try:
        return MobiBatchSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def reload_settings() -> MobiBatchSettings:
    """Force reload settings (clear cache)."""
    get_settings.cache_clear()
    return get_settings()
