"""Public interface for locating and running the installed platform binary."""

from __future__ import annotations

from services.launcher.models import (
    BinaryMatch,
    LaunchTarget,
    LauncherError,
    ResolutionError,
    SpawnError,
)
from services.launcher.process import deliver_signal_to_self, forward_signals, run, spawn_binary
from services.launcher.resolution import (
    PACKAGE_ROOT_ENV,
    candidate_bin_directories,
    detect_target,
    find_in_directory,
    require_binary,
    resolve_binary,
    upgrade_disguised_binary,
)

__all__ = [
    "PACKAGE_ROOT_ENV",
    "BinaryMatch",
    "LaunchTarget",
    "LauncherError",
    "ResolutionError",
    "SpawnError",
    "candidate_bin_directories",
    "deliver_signal_to_self",
    "detect_target",
    "find_in_directory",
    "forward_signals",
    "require_binary",
    "resolve_binary",
    "run",
    "spawn_binary",
    "upgrade_disguised_binary",
]
