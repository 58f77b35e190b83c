from __future__ import annotations

from importlib import metadata

import pytest

from app import version as version_module
from app.version import DEVELOPMENT_VERSION, get_tool_version


@pytest.fixture(autouse=True)
def _fresh_version_cache(monkeypatch):
    monkeypatch.delenv("CRUSH_NPM_VERSION", raising=False)
    monkeypatch.delenv("GITHUB_REF_NAME", raising=False)
    get_tool_version.cache_clear()  # type: ignore[attr-defined]
    yield
    get_tool_version.cache_clear()  # type: ignore[attr-defined]


def test_override_wins_over_ref_name(monkeypatch) -> None:
    monkeypatch.setenv("CRUSH_NPM_VERSION", "v1.2.3")
    monkeypatch.setenv("GITHUB_REF_NAME", "v9.9.9")

    assert get_tool_version() == "1.2.3"


def test_ref_name_used_when_no_override(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_REF_NAME", "v0.5.0")

    assert get_tool_version() == "0.5.0"


def test_blank_override_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("CRUSH_NPM_VERSION", "  ")
    monkeypatch.setenv("GITHUB_REF_NAME", "0.6.0")

    assert get_tool_version() == "0.6.0"


def test_installed_distribution_metadata(monkeypatch) -> None:
    asked: list[str] = []

    def _version(name: str) -> str:
        asked.append(name)
        return "0.3.1"

    monkeypatch.setattr(version_module.metadata, "version", _version)

    assert get_tool_version() == "0.3.1"
    assert asked == ["crush-npm"]


def test_development_version_when_not_installed(monkeypatch) -> None:
    def _missing(name: str) -> str:
        raise metadata.PackageNotFoundError(name)

    monkeypatch.setattr(version_module.metadata, "version", _missing)

    assert get_tool_version() == DEVELOPMENT_VERSION == "0.0.0-dev"
