"""Data models and errors used by the package builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


class PackagingError(RuntimeError):
    """Base class for errors raised while building platform packages."""


class UsageError(PackagingError):
    """Raised when the builder is invoked without the required input."""


class FetchError(PackagingError):
    """Raised when a release archive cannot be downloaded."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class ExtractionError(PackagingError):
    """Raised when no extraction strategy produced the expected binary."""

    def __init__(self, message: str, *, archive: Path | None = None, attempts: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.archive = archive
        self.attempts = attempts


@dataclass(frozen=True)
class PlatformBuildResult:
    """Outcome of building a single platform package."""

    npm_platform: str
    package_dir: Path | None = None
    binary_path: Path | None = None
    skipped_reason: str | None = None

    @property
    def built(self) -> bool:
        return self.skipped_reason is None and self.package_dir is not None


@dataclass
class BuildSummary:
    """Aggregate outcome of a full build run."""

    version: str
    dist_dir: Path
    packages_dir: Path
    results: list[PlatformBuildResult] = field(default_factory=list)
    root_manifest: Path | None = None

    @property
    def built_platforms(self) -> list[str]:
        return [result.npm_platform for result in self.results if result.built]

    @property
    def skipped_platforms(self) -> list[str]:
        return [result.npm_platform for result in self.results if not result.built]

    @property
    def succeeded(self) -> bool:
        return bool(self.built_platforms)
