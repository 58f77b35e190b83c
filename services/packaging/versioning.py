"""Helpers for validating and comparing release versions."""

from __future__ import annotations

import logging

from packaging.version import InvalidVersion, Version

from services.packaging.models import UsageError


_LOGGER = logging.getLogger(__name__)

__all__ = ["compare_versions", "is_valid_version", "normalize_release_version"]


def normalize_release_version(raw: str | None) -> str:
    """Return the bare release version for ``raw`` (``v1.2.3`` -> ``1.2.3``).

    Raises :class:`UsageError` when no version was supplied.  Versions that do
    not parse are accepted with a warning because upstream tags are not under
    our control.
    """

    if raw is None or not raw.strip():
        raise UsageError("A release version is required")
    version = raw.strip()
    if version.startswith("v"):
        version = version[1:]
    if not version:
        raise UsageError("A release version is required")
    if not is_valid_version(version):
        _LOGGER.warning("Release version %r is not a recognised version string", version)
    return version


def is_valid_version(version: str) -> bool:
    try:
        Version(version)
    except InvalidVersion:
        return False
    return True


def compare_versions(current_version: str, candidate: str) -> int:
    """Compare ``candidate`` against ``current_version``.

    Returns ``1`` when ``candidate`` is newer, ``-1`` when it is older and ``0``
    when equivalent or when either side cannot be parsed.
    """

    if candidate == current_version:
        return 0
    try:
        candidate_version = Version(candidate)
        current_version_parsed = Version(current_version)
    except InvalidVersion:
        return 0
    if candidate_version == current_version_parsed:
        return 0
    if candidate_version > current_version_parsed:
        return 1
    return -1
