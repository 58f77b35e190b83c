"""User-facing diagnostics printed by the launcher."""

from __future__ import annotations

from app.config import AppConfig, get_app_config
from services.launcher.models import LaunchTarget
from services.packaging.platforms import supported_npm_platforms


def not_found_message(target: LaunchTarget, config: AppConfig | None = None) -> str:
    """Explain why the platform binary is missing and how to fix it."""

    config = config or get_app_config()
    display_name = target.project.capitalize()
    package = target.platform_package_name
    platform = target.npm_platform
    supported = supported_npm_platforms()
    supported_lines = "\n".join(
        f"  - {', '.join(supported[index:index + 2])}" for index in range(0, len(supported), 2)
    )
    return f"""
{display_name} binary not found for {platform}

The platform-specific package "{package}" was not installed.

This can happen if:
1. Your platform ({platform}) is not supported
2. npm failed to install the optional dependency
3. You're using a package manager that doesn't support optionalDependencies

To fix this, try:
  npm install {package}

Or install {display_name} directly:
  # macOS
  brew install charmbracelet/tap/{target.project}

  # Windows
  winget install charmbracelet.{target.project}

  # Linux (Debian/Ubuntu)
  sudo apt install {target.project}

  # Or download from:
  {config.release.releases_page}

Supported platforms:
{supported_lines}
"""


def spawn_failure_message(target: LaunchTarget, error: BaseException) -> str:
    return f"Failed to execute {target.project.capitalize()}: {error}"


__all__ = ["not_found_message", "spawn_failure_message"]
