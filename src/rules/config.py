from __future__ import annotations

from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pallet.helper import (
    DEFAULT_CONFIG_TRAIT,
    DEFAULT_MODULE_TYPE,
    FrameInstanceUsageChecker,
)
from syntax.attrs import DEFAULT_NAMESPACE

CONFIG_FILENAME = "palletcheck.toml"


class PalletCheckConfig(BaseModel):
    """Configuration for pallet declaration checking and metadata output."""

    model_config = ConfigDict(extra="forbid")

    output_dir: str = Field(
        default=".palletcheck",
        description="Output directory for generated metadata artifacts",
    )
    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all Rust files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "Enable nested .gitignore composition (default: false for root-only)"
        ),
    )
    marker_namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        description="First path segment of marker attributes (`#[pallet::..]`)",
    )
    config_trait: str = Field(
        default=DEFAULT_CONFIG_TRAIT,
        description="Trait bounding `T` in pallet generics",
    )
    module_type: str = Field(
        default=DEFAULT_MODULE_TYPE,
        description="Self type of the call impl block (`Module<T>`)",
    )

    @field_validator("marker_namespace", "config_trait", "module_type")
    @classmethod
    def validate_identifier(cls, v: Any) -> Any:
        """Require a plain Rust identifier."""
        if not isinstance(v, str) or not v.isidentifier():
            msg = f"expected a plain identifier, got {v!r}"
            raise ValueError(msg)
        return v

    def instance_checker(self) -> FrameInstanceUsageChecker:
        return FrameInstanceUsageChecker(
            config_trait=self.config_trait, module_type=self.module_type
        )


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def resolve_output_dir(root: Path, output_dir: str) -> Path:
    """Resolve a config-provided output_dir safely within the repo root.

    The config output_dir must be a non-empty relative path that remains
    within the repository root after resolution. Absolute paths and paths
    that escape the root are rejected.
    """
    if not output_dir:
        msg = "output_dir must be a non-empty relative path"
        raise ConfigError(msg)

    output_path = Path(output_dir)
    if output_dir.startswith("~") or output_path.is_absolute():
        msg = "output_dir must be a relative path within the repo root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved_output = (resolved_root / output_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve output_dir '{output_dir}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved_output.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"output_dir '{output_dir}' escapes the repository root"
        raise ConfigError(msg) from exc

    return resolved_output


def load_config(root: Path) -> PalletCheckConfig:
    """Load configuration from palletcheck.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return PalletCheckConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return PalletCheckConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
