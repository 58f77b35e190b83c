from __future__ import annotations

import io
import logging
from pathlib import Path

import pytest

from shared import logging_config


def _flush_managed_handlers() -> None:
    for handler in logging.getLogger().handlers:
        if getattr(handler, logging_config._HANDLER_TAG, False):  # type: ignore[attr-defined]
            handler.flush()


def _managed_handlers() -> list[logging.Handler]:
    return [
        handler
        for handler in logging.getLogger().handlers
        if getattr(handler, logging_config._HANDLER_TAG, False)  # type: ignore[attr-defined]
    ]


@pytest.fixture(autouse=True)
def reset_logging():
    logging_config._reset_for_tests()
    try:
        yield
    finally:
        logging_config._reset_for_tests()


def test_logging_creates_file_and_records_progress(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))

    log_path = logging_config.ensure_app_logging(console=False)
    assert log_path == tmp_path / "build.log"
    assert logging_config.get_file_log_verbosity() == logging_config.LogVerbosity.INFO
    logging.getLogger("services.packaging.builder").debug("debug message")
    logging.getLogger("services.packaging.builder").info("info message")
    _flush_managed_handlers()

    contents = log_path.read_text(encoding="utf-8")
    assert "debug message" not in contents
    assert "info message" in contents


def test_log_file_environment_variable_wins(tmp_path, monkeypatch):
    explicit = tmp_path / "explicit" / "crush.log"
    monkeypatch.setenv("CRUSH_NPM_LOG_FILE", str(explicit))
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path / "ignored"))

    assert logging_config.ensure_app_logging(console=False) == explicit
    assert explicit.parent.is_dir()


def test_logging_configuration_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))
    stream = io.StringIO()

    first_path = logging_config.ensure_app_logging(stream=stream)
    second_path = logging_config.ensure_app_logging(stream=stream)

    assert first_path == second_path
    handlers = _managed_handlers()
    assert len(handlers) == 2
    file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename) == first_path


def test_console_handler_prints_plain_messages(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))
    stream = io.StringIO()

    logging_config.ensure_app_logging(stream=stream)
    logging.getLogger("tests.logging").info("Processing linux-x64...")
    logging.getLogger("tests.logging").debug("hidden detail")

    assert stream.getvalue() == "Processing linux-x64...\n"


def test_verbose_lowers_file_and_console_levels(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))
    stream = io.StringIO()

    log_path = logging_config.ensure_app_logging(stream=stream)
    logging_config.set_file_log_verbosity("verbose")
    logging.getLogger("tests.logging").debug("debug message")
    _flush_managed_handlers()

    assert "debug message" in log_path.read_text(encoding="utf-8")
    assert "debug message" in stream.getvalue()
    assert logging_config.get_file_log_verbosity() == logging_config.LogVerbosity.VERBOSE


def test_disabling_file_logging_suppresses_output(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))

    log_path = logging_config.ensure_app_logging(console=False)
    logging_config.set_file_log_verbosity(logging_config.LogVerbosity.DISABLED)
    logging.getLogger("tests.logging").error("error message")
    _flush_managed_handlers()

    assert "error message" not in log_path.read_text(encoding="utf-8")


def test_unknown_verbosity_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))

    with pytest.raises(ValueError):
        logging_config.set_file_log_verbosity("chatty")


def test_home_directory_is_redacted_in_log_file(tmp_path, monkeypatch):
    monkeypatch.setenv("CRUSH_NPM_LOG_DIR", str(tmp_path))
    home = str(Path.home())
    if home in {"", "/"}:
        pytest.skip("home directory cannot be redacted meaningfully")

    log_path = logging_config.ensure_app_logging(console=False)
    logging.getLogger("tests.logging").warning("cache at %s/dist", home)
    _flush_managed_handlers()

    contents = log_path.read_text(encoding="utf-8")
    assert home not in contents
    assert logging_config.USER_HOME_PLACEHOLDER in contents
