"""Manifest and README rendering for npm packages."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from app.config import DistributionConfig
from services.packaging.models import PackagingError
from services.packaging.platforms import PlatformDescriptor
from services.packaging.versioning import compare_versions


_LOGGER = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"
README_FILENAME = "README.md"
OPTIONAL_DEPENDENCIES_KEY = "optionalDependencies"


def render_platform_manifest(
    descriptor: PlatformDescriptor, version: str, distribution: DistributionConfig
) -> dict[str, Any]:
    """Return the ``package.json`` payload for one platform package."""

    npm_platform = descriptor.npm_platform
    return {
        "name": distribution.platform_package_name(npm_platform),
        "version": version,
        "description": f"{distribution.project.capitalize()} binary for {npm_platform}",
        "license": distribution.license,
        "repository": {
            "type": "git",
            "url": distribution.repository_url,
        },
        "os": [descriptor.os],
        "cpu": [descriptor.cpu],
        "files": ["bin/"],
        "preferUnplugged": True,
    }


def render_platform_readme(descriptor: PlatformDescriptor, distribution: DistributionConfig) -> str:
    npm_platform = descriptor.npm_platform
    package_name = distribution.platform_package_name(npm_platform)
    display_name = distribution.project.capitalize()
    return (
        f"# {package_name}\n"
        "\n"
        f"Platform-specific binary package for {display_name} on {npm_platform}.\n"
        "\n"
        f"This package is automatically installed as a dependency of `{distribution.root_package_name}`.\n"
        "You should not need to install this package directly.\n"
        "\n"
        f"## About {display_name}\n"
        "\n"
        f"{distribution.tagline}\n"
        f"Learn more at {distribution.homepage}\n"
    )


def write_platform_package_files(
    package_dir: Path,
    descriptor: PlatformDescriptor,
    version: str,
    distribution: DistributionConfig,
) -> None:
    """Write ``package.json`` and ``README.md`` into ``package_dir``."""

    manifest = render_platform_manifest(descriptor, version, distribution)
    (package_dir / MANIFEST_FILENAME).write_text(dump_manifest(manifest), encoding="utf-8")
    (package_dir / README_FILENAME).write_text(
        render_platform_readme(descriptor, distribution), encoding="utf-8"
    )


def dump_manifest(manifest: dict[str, Any]) -> str:
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def load_manifest(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PackagingError(f"Unable to read manifest {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PackagingError(f"Manifest {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PackagingError(f"Manifest {path} must contain a JSON object")
    return data


def apply_release_version(manifest: dict[str, Any], version: str) -> dict[str, Any]:
    """Set ``version`` and every optional dependency constraint to ``version``.

    Key order is preserved so the rewritten file diffs cleanly.
    """

    manifest["version"] = version
    optional = manifest.get(OPTIONAL_DEPENDENCIES_KEY)
    if isinstance(optional, dict):
        for dependency in optional:
            optional[dependency] = version
    return manifest


def update_root_manifest(path: Path, version: str) -> bool:
    """Rewrite the root manifest at ``path`` for ``version`` in place.

    Returns ``True`` when the file content changed.  Running the update twice
    with the same version leaves the file byte-identical.
    """

    original_text = path.read_text(encoding="utf-8") if path.exists() else None
    if original_text is None:
        raise PackagingError(f"Root manifest not found: {path}")
    manifest = load_manifest(path)

    previous = manifest.get("version")
    if isinstance(previous, str) and compare_versions(previous, version) < 0:
        _LOGGER.warning("Root manifest version moves backwards: %s -> %s", previous, version)

    updated_text = dump_manifest(apply_release_version(manifest, version))
    if updated_text == original_text:
        _LOGGER.debug("Root manifest %s already at %s", path, version)
        return False
    path.write_text(updated_text, encoding="utf-8")
    _LOGGER.debug("Rewrote root manifest %s for %s", path, version)
    return True


__all__ = [
    "MANIFEST_FILENAME",
    "README_FILENAME",
    "apply_release_version",
    "dump_manifest",
    "load_manifest",
    "render_platform_manifest",
    "render_platform_readme",
    "update_root_manifest",
    "write_platform_package_files",
]
