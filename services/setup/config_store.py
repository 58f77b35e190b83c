"""Read and write the user's configuration file."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from services.setup.templates import ProviderTemplate, offline_base_config


_LOGGER = logging.getLogger(__name__)

CONFIG_DIR_ENV = "CRUSH_CONFIG_DIR"
CONFIG_FILENAME = "crush.json"


def get_config_dir(*, platform: str | None = None) -> Path:
    """Return the platform-specific configuration directory."""

    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if (platform or sys.platform).startswith("win"):
        return Path(os.environ.get("LOCALAPPDATA", "")) / "crush"
    return Path.home() / ".config" / "crush"


def get_config_path(*, platform: str | None = None) -> Path:
    return get_config_dir(platform=platform) / CONFIG_FILENAME


def build_quick_config(
    template: ProviderTemplate, endpoint: str, deployment: str | None = None
) -> dict[str, Any]:
    """Return the offline base config with a single provider from ``template``."""

    config = offline_base_config()
    config["providers"] = {
        template.key: template.render(endpoint, deployment=deployment, model_name=deployment)
    }
    return config


def write_config(config: Mapping[str, Any], path: Path | None = None) -> Path:
    target = path or get_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(config, indent=2), encoding="utf-8")
    _LOGGER.debug("Wrote configuration to %s", target)
    return target


def read_config_text(path: Path | None = None) -> str | None:
    target = path or get_config_path()
    try:
        return target.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


__all__ = [
    "CONFIG_DIR_ENV",
    "CONFIG_FILENAME",
    "build_quick_config",
    "get_config_dir",
    "get_config_path",
    "read_config_text",
    "write_config",
]
