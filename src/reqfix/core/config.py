"""Configuration management for reqfix (reqfix.toml parsing + defaults)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "reqfix.toml"
LOG_LEVEL_ENV = "REQFIX_LOG_LEVEL"


@dataclass
class FixConfig:
    dry_run: bool = False
    pin_comment: str | None = "pinned to avoid a vulnerability"


@dataclass
class ManifestConfig:
    suffixes: list[str] = field(default_factory=lambda: [".txt", ".in"])


@dataclass
class ReqfixConfig:
    """Complete reqfix configuration."""

    fix: FixConfig = field(default_factory=FixConfig)
    manifest: ManifestConfig = field(default_factory=ManifestConfig)
    log_level: str | None = None


def load_config(project_path: Path | None = None) -> ReqfixConfig:
    """Load configuration from reqfix.toml if present, otherwise return defaults."""
    config = ReqfixConfig()

    if project_path is None:
        project_path = Path.cwd()

    config.log_level = os.environ.get(LOG_LEVEL_ENV) or None

    config_file = project_path / CONFIG_FILE_NAME
    if not config_file.exists():
        return config

    with open(config_file, "rb") as f:
        data = tomllib.load(f)
    logger.debug("Loaded configuration from %s", config_file)

    if "fix" in data:
        fx = data["fix"]
        if "dry_run" in fx:
            config.fix.dry_run = bool(fx["dry_run"])
        if "pin_comment" in fx:
            # an empty string disables the trailing comment on new pins
            config.fix.pin_comment = fx["pin_comment"] or None

    if "manifest" in data:
        m = data["manifest"]
        if "suffixes" in m:
            config.manifest.suffixes = [
                s if s.startswith(".") else f".{s}" for s in m["suffixes"]
            ]

    if "general" in data and config.log_level is None:
        config.log_level = data["general"].get("log_level")

    return config
