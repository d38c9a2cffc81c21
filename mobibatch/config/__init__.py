"""Configuration for mobibatch."""

from mobibatch.config.settings import (
    EngineConfig,
    MobiBatchSettings,
    get_settings,
    reload_settings,
)

__all__ = ["EngineConfig", "MobiBatchSettings", "get_settings", "reload_settings"]
