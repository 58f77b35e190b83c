"""Non-interactive configuration helper for offline deployments."""

from __future__ import annotations

from services.setup.config_store import build_quick_config, get_config_path, write_config
from services.setup.templates import PROVIDER_TEMPLATES, ProviderTemplate, get_template

__all__ = [
    "PROVIDER_TEMPLATES",
    "ProviderTemplate",
    "build_quick_config",
    "get_config_path",
    "get_template",
    "write_config",
]
