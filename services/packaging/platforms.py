"""The fixed matrix of platforms that receive a package."""

from __future__ import annotations

from dataclasses import dataclass

WINDOWS_OS = "win32"

TAR_ARCHIVE_EXTENSION = ".tar.gz"
ZIP_ARCHIVE_EXTENSION = ".zip"
DISGUISED_BINARY_SUFFIX = ".bin"


@dataclass(frozen=True)
class PlatformDescriptor:
    """One upstream release target and the npm ``os``/``cpu`` pair it maps to."""

    archive_suffix: str
    os: str
    cpu: str

    @property
    def npm_platform(self) -> str:
        return f"{self.os}-{self.cpu}"

    @property
    def is_windows(self) -> bool:
        return self.os == WINDOWS_OS

    @property
    def archive_extension(self) -> str:
        return ZIP_ARCHIVE_EXTENSION if self.is_windows else TAR_ARCHIVE_EXTENSION

    def archive_name(self, prefix: str, version: str) -> str:
        return f"{prefix}_{version}_{self.archive_suffix}{self.archive_extension}"

    def binary_name(self, project: str) -> str:
        return binary_name_for_os(project, self.os)


PLATFORMS: tuple[PlatformDescriptor, ...] = (
    PlatformDescriptor("Linux_x86_64", "linux", "x64"),
    PlatformDescriptor("Linux_arm64", "linux", "arm64"),
    PlatformDescriptor("Darwin_x86_64", "darwin", "x64"),
    PlatformDescriptor("Darwin_arm64", "darwin", "arm64"),
    PlatformDescriptor("Windows_x86_64", WINDOWS_OS, "x64"),
    PlatformDescriptor("Windows_arm64", WINDOWS_OS, "arm64"),
)


def binary_name_for_os(project: str, os_name: str) -> str:
    return f"{project}.exe" if os_name == WINDOWS_OS else project


def disguised_binary_name(project: str) -> str:
    return f"{project}{DISGUISED_BINARY_SUFFIX}"


def find_platform(npm_platform: str) -> PlatformDescriptor | None:
    for descriptor in PLATFORMS:
        if descriptor.npm_platform == npm_platform:
            return descriptor
    return None


def supported_npm_platforms() -> list[str]:
    return [descriptor.npm_platform for descriptor in PLATFORMS]


__all__ = [
    "DISGUISED_BINARY_SUFFIX",
    "PLATFORMS",
    "PlatformDescriptor",
    "WINDOWS_OS",
    "binary_name_for_os",
    "disguised_binary_name",
    "find_platform",
    "supported_npm_platforms",
]
