"""Configuration discovery and parsing helpers."""

from harvestbin.lib.config.settings import (
    HarvestConfig,
    load_config,
    load_config_with_sources,
    resolve_config_path,
)

__all__ = ["HarvestConfig", "load_config", "load_config_with_sources", "resolve_config_path"]
