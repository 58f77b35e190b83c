"""Version of the packaging tool, reported by ``crush-npm-build --tool-version``.

A release job sets ``CRUSH_NPM_VERSION`` (or GitHub sets ``GITHUB_REF_NAME``
to the pushed tag); otherwise the installed ``crush-npm`` distribution
answers. Source trees that are not installed report ``0.0.0-dev``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata

DISTRIBUTION_NAME = "crush-npm"
DEVELOPMENT_VERSION = "0.0.0-dev"
VERSION_ENVS = ("CRUSH_NPM_VERSION", "GITHUB_REF_NAME")


def _strip_tag_prefix(tag: str) -> str:
    tag = tag.strip()
    return tag[1:] if tag.startswith("v") else tag


@lru_cache(maxsize=1)
def get_tool_version() -> str:
    for name in VERSION_ENVS:
        value = os.environ.get(name, "")
        if value.strip():
            return _strip_tag_prefix(value)
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return DEVELOPMENT_VERSION


__all__ = ["DEVELOPMENT_VERSION", "DISTRIBUTION_NAME", "get_tool_version"]
