"""Build per-platform npm packages from upstream release archives."""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from app.config import AppConfig, get_app_config
from services.packaging.archive import extract_binary, make_executable
from services.packaging.download import ensure_archive
from services.packaging.manifest import update_root_manifest, write_platform_package_files
from services.packaging.models import (
    BuildSummary,
    ExtractionError,
    FetchError,
    PackagingError,
    PlatformBuildResult,
)
from services.packaging.platforms import PLATFORMS, PlatformDescriptor, disguised_binary_name
from services.packaging.versioning import normalize_release_version


_LOGGER = logging.getLogger(__name__)

PACKAGES_DIRNAME = "packages"


class PackageBuilder:
    """Turn a release version into a set of installable platform packages."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        dist_dir: Path | None = None,
        root_manifest: Path | None = None,
        disguise_binaries: bool | None = None,
        jobs: int | None = None,
        keep_dist: bool = False,
        platforms: Sequence[PlatformDescriptor] = PLATFORMS,
    ) -> None:
        self._config = config or get_app_config()
        build = self._config.build
        self._dist_dir = Path(dist_dir) if dist_dir is not None else build.dist_dir
        self._root_manifest = Path(root_manifest) if root_manifest is not None else build.root_manifest
        self._disguise = build.disguise_binaries if disguise_binaries is None else disguise_binaries
        self._jobs = max(1, jobs if jobs is not None else build.jobs)
        self._keep_dist = keep_dist
        self._platforms = tuple(platforms)

    @property
    def dist_dir(self) -> Path:
        return self._dist_dir

    @property
    def packages_dir(self) -> Path:
        return self._dist_dir / PACKAGES_DIRNAME

    def build_all(self, version: str | None) -> BuildSummary:
        """Build every platform package for ``version`` and update the root manifest.

        A platform that fails to download or extract is left out of the
        summary; it never stops the remaining platforms.
        """

        release_version = normalize_release_version(version)
        _LOGGER.info("Building npm packages for %s v%s", self._config.distribution.project, release_version)

        self._prepare_output_directory()
        summary = BuildSummary(
            version=release_version,
            dist_dir=self._dist_dir,
            packages_dir=self.packages_dir,
        )

        if self._jobs > 1 and len(self._platforms) > 1:
            with ThreadPoolExecutor(max_workers=self._jobs, thread_name_prefix="crush-build") as pool:
                summary.results = list(
                    pool.map(lambda d: self._build_isolated(release_version, d), self._platforms)
                )
        else:
            summary.results = [self._build_isolated(release_version, d) for d in self._platforms]

        _LOGGER.info("")
        _LOGGER.info("Updating main package version to %s...", release_version)
        update_root_manifest(self._root_manifest, release_version)
        summary.root_manifest = self._root_manifest

        if not summary.succeeded:
            _LOGGER.warning("No platform packages were built for %s", release_version)
        return summary

    def build_one(self, version: str, descriptor: PlatformDescriptor) -> PlatformBuildResult:
        """Download, extract and package the binary for ``descriptor``."""

        distribution = self._config.distribution
        release = self._config.release
        npm_platform = descriptor.npm_platform
        archive_name = descriptor.archive_name(release.archive_prefix, version)
        binary_name = descriptor.binary_name(distribution.project)
        stored_name = disguised_binary_name(distribution.project) if self._disguise else binary_name
        archive_path = self._dist_dir / archive_name
        package_dir = self.packages_dir / distribution.platform_directory_name(npm_platform)

        _LOGGER.info("")
        _LOGGER.info("Processing %s...", npm_platform)

        try:
            ensure_archive(
                release.download_url(version, archive_name),
                archive_path,
                timeout=release.download_timeout_seconds,
            )
        except FetchError as exc:
            _LOGGER.warning("  Skipping %s: download failed (%s)", npm_platform, exc)
            return PlatformBuildResult(npm_platform, skipped_reason=f"download failed: {exc}")

        if package_dir.exists():
            shutil.rmtree(package_dir)
        (package_dir / "bin").mkdir(parents=True)

        _LOGGER.info("  Extracting binary...")
        try:
            binary_path = extract_binary(archive_path, binary_name, package_dir, target_name=stored_name)
        except ExtractionError as exc:
            _LOGGER.error("  ERROR: Failed to extract binary for %s: %s", npm_platform, exc)
            self._discard_package(package_dir)
            return PlatformBuildResult(npm_platform, skipped_reason=f"extraction failed: {exc}")

        make_executable(binary_path)

        if not binary_path.is_file():
            _LOGGER.error("  ERROR: Failed to extract binary for %s", npm_platform)
            self._discard_package(package_dir)
            return PlatformBuildResult(npm_platform, skipped_reason="binary missing after extraction")

        write_platform_package_files(package_dir, descriptor, version, distribution)
        _LOGGER.info("  Built %s", package_dir.name)
        return PlatformBuildResult(npm_platform, package_dir=package_dir, binary_path=binary_path)

    def _build_isolated(self, version: str, descriptor: PlatformDescriptor) -> PlatformBuildResult:
        try:
            return self.build_one(version, descriptor)
        except (PackagingError, OSError) as exc:
            _LOGGER.error("  ERROR: Failed to build %s: %s", descriptor.npm_platform, exc)
        except Exception:  # pragma: no cover
            _LOGGER.exception("Unexpected error while building %s", descriptor.npm_platform)
        self._discard_package(
            self.packages_dir / self._config.distribution.platform_directory_name(descriptor.npm_platform)
        )
        return PlatformBuildResult(descriptor.npm_platform, skipped_reason="build error")

    def _prepare_output_directory(self) -> None:
        if self._keep_dist:
            _LOGGER.debug("Keeping cached archives in %s", self._dist_dir)
            if self.packages_dir.exists():
                shutil.rmtree(self.packages_dir)
        elif self._dist_dir.exists():
            shutil.rmtree(self._dist_dir)
        self.packages_dir.mkdir(parents=True, exist_ok=True)

    def _discard_package(self, package_dir: Path) -> None:
        if package_dir.exists():
            shutil.rmtree(package_dir, ignore_errors=True)
            _LOGGER.debug("Removed partial package %s", package_dir)


def build_all(version: str | None, **kwargs) -> BuildSummary:
    """Convenience wrapper around :meth:`PackageBuilder.build_all`."""

    return PackageBuilder(**kwargs).build_all(version)


__all__ = ["PACKAGES_DIRNAME", "PackageBuilder", "build_all"]
