"""Public API for the platform package builder."""

from __future__ import annotations

from services.packaging.builder import PACKAGES_DIRNAME, PackageBuilder, build_all
from services.packaging.models import (
    BuildSummary,
    ExtractionError,
    FetchError,
    PackagingError,
    PlatformBuildResult,
    UsageError,
)
from services.packaging.platforms import (
    PLATFORMS,
    PlatformDescriptor,
    binary_name_for_os,
    disguised_binary_name,
    find_platform,
    supported_npm_platforms,
)

__all__ = [
    "PACKAGES_DIRNAME",
    "PLATFORMS",
    "BuildSummary",
    "ExtractionError",
    "FetchError",
    "PackageBuilder",
    "PackagingError",
    "PlatformBuildResult",
    "PlatformDescriptor",
    "UsageError",
    "binary_name_for_os",
    "build_all",
    "disguised_binary_name",
    "find_platform",
    "supported_npm_platforms",
]
