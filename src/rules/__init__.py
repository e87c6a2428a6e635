"""Configuration rules for palletcheck."""

from rules.config import (
    CONFIG_FILENAME,
    ConfigError,
    PalletCheckConfig,
    load_config,
    resolve_output_dir,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "PalletCheckConfig",
    "load_config",
    "resolve_output_dir",
]
