from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()

from app.config import reset_app_config_cache  # noqa: E402
from shared import logging_config  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep logs, user config and launcher lookups inside temporary folders.

    The global npm prefix is cleared and ``npm root -g`` is never consulted,
    so a real global install on the test machine cannot be resolved.
    """

    sandbox = tmp_path_factory.mktemp("env")
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(sandbox / "logs"))
    monkeypatch.setenv("CRUSH_CONFIG_DIR", str(sandbox / "config"))
    monkeypatch.delenv("CRUSH_NPM_CONFIG", raising=False)
    monkeypatch.delenv("CRUSH_PACKAGE_ROOT", raising=False)
    monkeypatch.delenv("NODE_PATH", raising=False)
    for prefix_env in ("npm_config_prefix", "NPM_CONFIG_PREFIX", "PREFIX"):
        monkeypatch.delenv(prefix_env, raising=False)
    monkeypatch.setattr("services.launcher.resolution._query_npm_global_root", lambda: None)
    reset_app_config_cache()
    logging_config._reset_for_tests()

    yield

    logging_config._reset_for_tests()
    reset_app_config_cache()
