"""Errors and value types used by the binary launcher."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from services.packaging.platforms import WINDOWS_OS, binary_name_for_os, disguised_binary_name


class LauncherError(RuntimeError):
    """Base class for launcher failures."""


class ResolutionError(LauncherError):
    """Raised when no candidate location yields a binary."""

    def __init__(self, message: str, *, target: "LaunchTarget | None" = None, searched: tuple[Path, ...] = ()) -> None:
        super().__init__(message)
        self.target = target
        self.searched = searched


class SpawnError(LauncherError):
    """Raised when the resolved binary cannot be started."""

    def __init__(self, message: str, *, binary: Path | None = None) -> None:
        super().__init__(message)
        self.binary = binary


@dataclass(frozen=True)
class LaunchTarget:
    """The running platform expressed in npm ``os``/``cpu`` terms."""

    os: str
    cpu: str
    project: str
    scope: str

    @property
    def npm_platform(self) -> str:
        return f"{self.os}-{self.cpu}"

    @property
    def is_windows(self) -> bool:
        return self.os == WINDOWS_OS

    @property
    def platform_directory_name(self) -> str:
        return f"{self.project}-{self.npm_platform}"

    @property
    def platform_package_name(self) -> str:
        return f"{self.scope}/{self.platform_directory_name}"

    @property
    def binary_name(self) -> str:
        return binary_name_for_os(self.project, self.os)

    @property
    def disguised_name(self) -> str:
        return disguised_binary_name(self.project)


@dataclass(frozen=True)
class BinaryMatch:
    """A binary found in a candidate directory, possibly still disguised."""

    path: Path
    disguised: bool = False
