"""Locate the installed platform binary across package-manager layouts.

npm, yarn and pnpm place optional dependencies at different depths, so the
platform package is looked for in several places:

* nested under the wrapper package's own ``node_modules``;
* next to the wrapper inside the shared scope directory;
* hoisted into the ``node_modules`` folder that holds the wrapper;
* wherever Node-style module resolution finds the platform package's
  ``package.json``: every ancestor's ``node_modules``, then ``NODE_PATH``, then
  the global ``node_modules`` of the npm prefix (``npm root -g`` as a last
  resort) so a globally installed package is found from any directory.

A binary shipped under its disguised ``.bin`` name is renamed to the real
executable name the first time it is found.
"""

from __future__ import annotations

import logging
import os
import platform as _platform
import shutil
import stat
import subprocess
import sys
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from app.config import AppConfig, get_app_config
from services.launcher.models import BinaryMatch, LaunchTarget, ResolutionError
from services.packaging.platforms import WINDOWS_OS


_LOGGER = logging.getLogger(__name__)

PACKAGE_ROOT_ENV = "CRUSH_PACKAGE_ROOT"
NODE_MODULES = "node_modules"
PACKAGE_BIN_DIR = "bin"
MANIFEST_FILENAME = "package.json"
EXECUTABLE_MODE = 0o755
NPM_PREFIX_ENVS = ("npm_config_prefix", "NPM_CONFIG_PREFIX", "PREFIX")
NPM_ROOT_TIMEOUT_SECONDS = 10


def normalize_os(value: str) -> str:
    normalized = value.strip().lower()
    if normalized.startswith("linux"):
        return "linux"
    if normalized.startswith("darwin") or normalized.startswith("mac"):
        return "darwin"
    if normalized.startswith(("win", "cygwin", "msys")):
        return WINDOWS_OS
    return normalized


def normalize_arch(value: str) -> str:
    normalized = value.strip().lower()
    if normalized in {"x86_64", "amd64", "x64"}:
        return "x64"
    if normalized in {"aarch64", "arm64", "armv8", "armv8l"}:
        return "arm64"
    return normalized


def detect_target(
    config: AppConfig | None = None,
    *,
    system: str | None = None,
    machine: str | None = None,
) -> LaunchTarget:
    """Describe the running platform (or an explicit ``system``/``machine``)."""

    config = config or get_app_config()
    return LaunchTarget(
        os=normalize_os(system or sys.platform),
        cpu=normalize_arch(machine or _platform.machine()),
        project=config.distribution.project,
        scope=config.distribution.scope,
    )


def default_package_root() -> Path:
    """Return the installed wrapper package directory."""

    override = os.environ.get(PACKAGE_ROOT_ENV)
    if override:
        return Path(override).expanduser()
    return Path.cwd()


def candidate_bin_directories(
    target: LaunchTarget,
    package_root: Path,
    *,
    node_path: Sequence[str] | None = None,
) -> list[Path]:
    """Return the ordered, de-duplicated list of directories to search."""

    return list(iter_candidate_bin_directories(target, package_root, node_path=node_path))


def iter_candidate_bin_directories(
    target: LaunchTarget,
    package_root: Path,
    *,
    node_path: Sequence[str] | None = None,
) -> Iterator[Path]:
    """Yield candidate directories lazily.

    Module resolution (which may run ``npm root -g``) only happens once the
    fixed locations have been consumed.

    For a scoped wrapper (``node_modules/@offlinecli/crush``) the hoisted
    location equals the scoped sibling and is yielded once.
    """

    platform_dir = target.platform_directory_name
    seen: set[str] = set()

    def _fresh(candidate: Path) -> bool:
        key = os.path.normcase(os.path.abspath(candidate))
        if key in seen:
            return False
        seen.add(key)
        return True

    fixed = (
        package_root / NODE_MODULES / target.scope / platform_dir / PACKAGE_BIN_DIR,
        package_root.parent / platform_dir / PACKAGE_BIN_DIR,
        package_root.parent.parent / target.scope / platform_dir / PACKAGE_BIN_DIR,
    )
    for candidate in fixed:
        if _fresh(candidate):
            yield candidate

    manifest = resolve_platform_manifest(target, package_root, node_path=node_path)
    if manifest is not None:
        resolved = manifest.parent / PACKAGE_BIN_DIR
        if _fresh(resolved):
            yield resolved


def resolve_platform_manifest(
    target: LaunchTarget,
    package_root: Path,
    *,
    node_path: Sequence[str] | None = None,
) -> Path | None:
    """Find ``<scope>/<platform package>/package.json`` the way Node resolves modules."""

    relative = Path(NODE_MODULES, target.scope, target.platform_directory_name, MANIFEST_FILENAME)
    for directory in _resolution_roots(package_root):
        if directory.name == NODE_MODULES:
            continue
        manifest = directory / relative
        if manifest.is_file():
            _LOGGER.debug("Resolved %s via %s", target.platform_package_name, manifest)
            return manifest

    entries = node_path if node_path is not None else _node_path_entries()
    for entry in entries:
        manifest = _scoped_manifest(Path(entry), target)
        if manifest.is_file():
            _LOGGER.debug("Resolved %s via NODE_PATH entry %s", target.platform_package_name, entry)
            return manifest

    global_roots = global_node_modules_roots()
    if not global_roots:
        npm_root = _query_npm_global_root()
        global_roots = [npm_root] if npm_root is not None else []
    for modules_dir in global_roots:
        manifest = _scoped_manifest(modules_dir, target)
        if manifest.is_file():
            _LOGGER.debug("Resolved %s via global modules %s", target.platform_package_name, modules_dir)
            return manifest
    return None


def global_node_modules_roots(*, windows: bool | None = None) -> list[Path]:
    """Return the global ``node_modules`` directory named by the npm prefix.

    The prefix comes from ``npm_config_prefix`` (set by npm for scripts it
    runs) or ``PREFIX``. Global packages live in ``<prefix>/lib/node_modules``,
    or ``<prefix>/node_modules`` on Windows.
    """

    if windows is None:
        windows = os.name == "nt"
    for name in NPM_PREFIX_ENVS:
        prefix = os.environ.get(name)
        if prefix:
            base = Path(prefix).expanduser()
            return [base / NODE_MODULES] if windows else [base / "lib" / NODE_MODULES]
    return []


def find_in_directory(bin_dir: Path, target: LaunchTarget) -> BinaryMatch | None:
    """Look for the executable, then its disguised variant, in ``bin_dir``.

    Pure lookup: nothing on disk is changed.
    """

    final_path = bin_dir / target.binary_name
    if final_path.is_file():
        return BinaryMatch(final_path)
    disguised_path = bin_dir / target.disguised_name
    if disguised_path.is_file():
        return BinaryMatch(disguised_path, disguised=True)
    return None


def upgrade_disguised_binary(disguised_path: Path, final_path: Path, *, windows: bool) -> Path | None:
    """Rename a disguised binary to its executable name.

    Returns the path to execute: ``final_path`` after a successful rename, the
    disguised path itself when the rename is refused but the file can still
    be marked executable (Unix only), or ``None`` when neither works.
    Calling it again after a successful upgrade is a no-op returning
    ``final_path``.
    """

    if final_path.is_file() and not disguised_path.exists():
        return final_path
    try:
        disguised_path.rename(final_path)
    except OSError as exc:
        _LOGGER.debug("Could not rename %s to %s: %s", disguised_path, final_path, exc)
        if windows:
            return None
        if _mark_executable(disguised_path):
            return disguised_path
        return None
    if not windows:
        _mark_executable(final_path)
    _LOGGER.debug("Upgraded disguised binary %s -> %s", disguised_path.name, final_path.name)
    return final_path


def resolve_binary(
    target: LaunchTarget | None = None,
    package_root: Path | None = None,
    *,
    node_path: Sequence[str] | None = None,
) -> Path | None:
    """Return the binary to execute for ``target`` or ``None`` when missing."""

    target = target or detect_target()
    package_root = package_root if package_root is not None else default_package_root()
    for bin_dir in iter_candidate_bin_directories(target, package_root, node_path=node_path):
        match = find_in_directory(bin_dir, target)
        if match is None:
            _LOGGER.debug("No binary in %s", bin_dir)
            continue
        if not match.disguised:
            return match.path
        resolved = upgrade_disguised_binary(
            match.path, bin_dir / target.binary_name, windows=target.is_windows
        )
        if resolved is not None:
            return resolved
    return None


def require_binary(
    target: LaunchTarget | None = None,
    package_root: Path | None = None,
    *,
    node_path: Sequence[str] | None = None,
) -> Path:
    """Like :func:`resolve_binary` but raises :class:`ResolutionError`."""

    target = target or detect_target()
    package_root = package_root if package_root is not None else default_package_root()
    binary = resolve_binary(target, package_root, node_path=node_path)
    if binary is None:
        raise ResolutionError(
            f"{target.project} binary not found for {target.npm_platform}",
            target=target,
            searched=tuple(candidate_bin_directories(target, package_root, node_path=node_path)),
        )
    return binary


def _mark_executable(path: Path) -> bool:
    try:
        current = path.stat().st_mode
        path.chmod(stat.S_IMODE(current) | EXECUTABLE_MODE)
    except OSError as exc:
        _LOGGER.debug("Could not mark %s executable: %s", path, exc)
        return False
    return True


def _scoped_manifest(modules_dir: Path, target: LaunchTarget) -> Path:
    return modules_dir / target.scope / target.platform_directory_name / MANIFEST_FILENAME


def _query_npm_global_root() -> Path | None:
    """Ask ``npm root -g`` for the global modules folder, if npm is on PATH."""

    npm = shutil.which("npm")
    if npm is None:
        return None
    try:
        completed = subprocess.run(
            [npm, "root", "-g"],
            capture_output=True,
            text=True,
            timeout=NPM_ROOT_TIMEOUT_SECONDS,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        _LOGGER.debug("npm root -g failed: %s", exc)
        return None
    value = completed.stdout.strip()
    return Path(value) if value else None


def _resolution_roots(package_root: Path) -> Iterable[Path]:
    absolute = Path(os.path.abspath(package_root))
    yield absolute
    yield from absolute.parents


def _node_path_entries() -> list[str]:
    raw = os.environ.get("NODE_PATH", "")
    return [entry for entry in raw.split(os.pathsep) if entry]


__all__ = [
    "PACKAGE_ROOT_ENV",
    "candidate_bin_directories",
    "default_package_root",
    "detect_target",
    "find_in_directory",
    "global_node_modules_roots",
    "iter_candidate_bin_directories",
    "normalize_arch",
    "normalize_os",
    "require_binary",
    "resolve_binary",
    "resolve_platform_manifest",
    "upgrade_disguised_binary",
]
