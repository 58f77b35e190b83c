"""Distribution configuration loaded from JSON resources."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

_CONFIG_RESOURCE = "app.json"
_CONFIG_PATH_ENV = "CRUSH_NPM_CONFIG"
_APP_CONFIG_CACHE: AppConfig | None = None

_DEFAULT_PROJECT = "crush"
_DEFAULT_SCOPE = "@offlinecli"
_DEFAULT_LICENSE = "FSL-1.1-MIT"
_DEFAULT_REPOSITORY_URL = "git+https://github.com/kj55-dev/crush-npm.git"
_DEFAULT_HOMEPAGE = "https://charm.sh/crush"
_DEFAULT_TAGLINE = "Crush is a glamorous agentic coding assistant for your terminal."
_DEFAULT_URL_TEMPLATE = (
    "https://github.com/charmbracelet/crush/releases/download/v{version}/{archive}"
)
_DEFAULT_RELEASES_PAGE = "https://github.com/charmbracelet/crush/releases"
_DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class DistributionConfig:
    """Identity of the npm packages that wrap the upstream binary."""

    project: str
    scope: str
    license: str
    repository_url: str
    homepage: str
    tagline: str

    @property
    def root_package_name(self) -> str:
        return f"{self.scope}/{self.project}"

    def platform_directory_name(self, npm_platform: str) -> str:
        return f"{self.project}-{npm_platform}"

    def platform_package_name(self, npm_platform: str) -> str:
        return f"{self.scope}/{self.platform_directory_name(npm_platform)}"


@dataclass(frozen=True)
class ReleaseConfig:
    """Where upstream release archives come from."""

    archive_prefix: str
    url_template: str
    releases_page: str
    download_timeout_seconds: float

    def download_url(self, version: str, archive_name: str) -> str:
        return self.url_template.format(version=version, archive=archive_name)


@dataclass(frozen=True)
class BuildConfig:
    """Defaults for the package builder command."""

    dist_dir: Path
    root_manifest: Path
    disguise_binaries: bool
    jobs: int


@dataclass(frozen=True)
class AppConfig:
    """Structured configuration values for the build and launch tooling."""

    distribution: DistributionConfig
    release: ReleaseConfig
    build: BuildConfig


def get_app_config() -> AppConfig:
    """Return the cached application configuration."""

    global _APP_CONFIG_CACHE
    if _APP_CONFIG_CACHE is None:
        _APP_CONFIG_CACHE = load_app_config()
    return _APP_CONFIG_CACHE


def reset_app_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _APP_CONFIG_CACHE
    _APP_CONFIG_CACHE = None


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from ``path``, ``$CRUSH_NPM_CONFIG`` or the bundled JSON."""

    if path is None:
        env_path = os.environ.get(_CONFIG_PATH_ENV)
        if env_path:
            path = env_path
    data = _read_config_data(path)
    return AppConfig(
        distribution=_parse_distribution_section(data.get("distribution")),
        release=_parse_release_section(data.get("release")),
        build=_parse_build_section(data.get("build")),
    )


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_distribution_section(section: Any) -> DistributionConfig:
    if not isinstance(section, Mapping):
        section = {}
    return DistributionConfig(
        project=_coerce_text(section.get("project"), default=_DEFAULT_PROJECT),
        scope=_coerce_scope(section.get("scope")),
        license=_coerce_text(section.get("license"), default=_DEFAULT_LICENSE),
        repository_url=_coerce_text(
            section.get("repository_url"), default=_DEFAULT_REPOSITORY_URL
        ),
        homepage=_coerce_text(section.get("homepage"), default=_DEFAULT_HOMEPAGE),
        tagline=_coerce_text(section.get("tagline"), default=_DEFAULT_TAGLINE),
    )


def _parse_release_section(section: Any) -> ReleaseConfig:
    if not isinstance(section, Mapping):
        section = {}
    template = _coerce_text(section.get("url_template"), default=_DEFAULT_URL_TEMPLATE)
    if "{version}" not in template or "{archive}" not in template:
        template = _DEFAULT_URL_TEMPLATE
    return ReleaseConfig(
        archive_prefix=_coerce_text(section.get("archive_prefix"), default=_DEFAULT_PROJECT),
        url_template=template,
        releases_page=_coerce_text(section.get("releases_page"), default=_DEFAULT_RELEASES_PAGE),
        download_timeout_seconds=_coerce_positive_float(
            section.get("download_timeout_seconds"), default=_DEFAULT_TIMEOUT_SECONDS
        ),
    )


def _parse_build_section(section: Any) -> BuildConfig:
    if not isinstance(section, Mapping):
        section = {}
    return BuildConfig(
        dist_dir=Path(_coerce_text(section.get("dist_dir"), default="dist")),
        root_manifest=Path(
            _coerce_text(section.get("root_manifest"), default="npm/package.json")
        ),
        disguise_binaries=section.get("disguise_binaries") is True,
        jobs=_coerce_positive_int(section.get("jobs"), default=1),
    )


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_scope(value: Any) -> str:
    scope = _coerce_text(value, default=_DEFAULT_SCOPE)
    if not scope.startswith("@"):
        scope = f"@{scope}"
    return scope.rstrip("/")


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except ValueError:
            return default
    else:
        return default
    if candidate <= 0:
        return default
    return candidate


def _coerce_positive_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate <= 0:
        return default
    return candidate
