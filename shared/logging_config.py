"""Central logging configuration for the build tooling.

Build runs are usually executed on CI machines or developer laptops, and the
log file tends to get pasted into issues.  The configuration below keeps a
full DEBUG-capable record on disk (with the user's home directory and name
redacted) and mirrors progress messages to the console so the builder still
reads like a plain command-line script.

Two environment variables allow customising where the log file is written:

``CRUSH_NPM_LOG_FILE``
    Absolute path to the log file that should be created.

``CRUSH_NPM_LOG_DIR``
    Directory where the default log file name will be created.  Ignored when
    ``CRUSH_NPM_LOG_FILE`` is present.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Iterable, TextIO

_LOG_FILE_ENV = "CRUSH_NPM_LOG_FILE"
_LOG_DIR_ENV = "CRUSH_NPM_LOG_DIR"
_DEFAULT_DIRNAME = ".crush_npm"
_DEFAULT_LOGNAME = "build.log"
_CONFIGURED = False
_LOG_PATH: Path | None = None
_HANDLER_TAG = "_crush_npm_logging_handler"
_FILE_HANDLER: logging.FileHandler | None = None
_CONSOLE_HANDLER: logging.StreamHandler | None = None

USER_PLACEHOLDER = "<user>"
USER_HOME_PLACEHOLDER = "<user_home>"


class LogVerbosity(str, Enum):
    """Verbosity levels supported by the build log file."""

    DISABLED = "disabled"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"


_VERBOSITY_LEVELS: dict[LogVerbosity, int] = {
    LogVerbosity.DISABLED: logging.CRITICAL + 1,
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}

_DEFAULT_VERBOSITY = LogVerbosity.INFO
_CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


def _collect_username_candidates() -> set[str]:
    candidates: set[str] = set()
    home_name = Path.home().name
    if home_name:
        candidates.add(home_name)
    for env_var in ("USERNAME", "USER", "LOGNAME"):
        value = os.environ.get(env_var)
        if value:
            candidates.add(value)
    # Very short names ("a", "ci") would redact ordinary words.
    return {
        candidate.strip()
        for candidate in candidates
        if candidate and len(candidate.strip()) > 2
    }


def _collect_path_candidates() -> set[str]:
    candidates: set[str] = set()
    home_str = str(Path.home())
    if home_str:
        candidates.add(home_str)
    for env_var in ("HOME", "USERPROFILE"):
        value = os.environ.get(env_var)
        if value:
            candidates.add(os.path.expanduser(value))

    normalised = {
        os.path.normpath(candidate)
        for candidate in candidates
        if candidate and candidate not in {os.sep, ""}
    }
    return {candidate for candidate in normalised if candidate and candidate != os.sep}


def _build_redaction_patterns() -> list[tuple[re.Pattern[str], str]]:
    patterns: list[tuple[re.Pattern[str], str]] = []
    flags = re.IGNORECASE if os.name == "nt" else 0

    # Longest paths first so nested home directories are replaced whole.
    for path in sorted(_collect_path_candidates(), key=len, reverse=True):
        variants = {path, path.replace("\\", "/")}
        for variant in sorted(variants):
            patterns.append((re.compile(re.escape(variant), flags), USER_HOME_PLACEHOLDER))

    for username in sorted(_collect_username_candidates(), key=len, reverse=True):
        escaped = re.escape(username)
        patterns.append(
            (re.compile(rf"(?<![\w.-]){escaped}(?![\w.-])", re.IGNORECASE), USER_PLACEHOLDER)
        )
    return patterns


_REDACTION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(_build_redaction_patterns())


def sanitize_text(message: str) -> str:
    """Replace the current user's home directory and name in ``message``."""

    if not message or not _REDACTION_PATTERNS:
        return message
    redacted = message
    for pattern, replacement in _REDACTION_PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class _RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return sanitize_text(super().format(record))


def ensure_app_logging(*, console: bool = True, stream: TextIO | None = None) -> Path:
    """Configure the root logger for the build tooling.

    The first invocation installs a file handler (level driven by the current
    :class:`LogVerbosity`) and, when ``console`` is true, a console handler at
    INFO level writing plain messages to ``stream`` (stderr by default).
    Subsequent calls are no-ops and return the already configured log path.
    """

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER, _CONSOLE_HANDLER

    if _CONFIGURED and _LOG_PATH is not None:
        return _LOG_PATH

    log_path = _resolve_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(_VERBOSITY_LEVELS[_CURRENT_VERBOSITY])
    file_handler.setFormatter(
        _RedactingFormatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(file_handler, _HANDLER_TAG, True)
    root.addHandler(file_handler)
    _FILE_HANDLER = file_handler

    target_stream = stream if stream is not None else sys.stderr
    if console and _should_add_console_handler(root.handlers, target_stream):
        console_handler = logging.StreamHandler(target_stream)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(console_handler, _HANDLER_TAG, True)
        root.addHandler(console_handler)
        _CONSOLE_HANDLER = console_handler

    _CONFIGURED = True
    _LOG_PATH = log_path

    logging.getLogger(__name__).debug(
        "Writing build logs to %s (verbosity=%s)",
        log_path,
        _CURRENT_VERBOSITY.value,
    )
    return log_path


def set_file_log_verbosity(verbosity: LogVerbosity | str) -> None:
    """Adjust the minimum severity recorded in the log file.

    ``VERBOSE`` also lowers the console handler to DEBUG so ``--verbose``
    shows per-member extraction details while the build runs.
    """

    global _CURRENT_VERBOSITY

    if isinstance(verbosity, str):
        try:
            verbosity = LogVerbosity(verbosity.lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported log verbosity: {verbosity}") from exc

    ensure_app_logging()
    _CURRENT_VERBOSITY = verbosity
    if _FILE_HANDLER is not None:
        _FILE_HANDLER.setLevel(_VERBOSITY_LEVELS[verbosity])
    if _CONSOLE_HANDLER is not None:
        _CONSOLE_HANDLER.setLevel(
            logging.DEBUG if verbosity is LogVerbosity.VERBOSE else logging.INFO
        )
    logging.getLogger(__name__).debug("File log verbosity set to %s", verbosity.value)


def get_file_log_verbosity() -> LogVerbosity:
    """Return the current verbosity level for the log file."""

    return _CURRENT_VERBOSITY


def _resolve_log_path() -> Path:
    env_file = os.environ.get(_LOG_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser()

    env_dir = os.environ.get(_LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser() / _DEFAULT_LOGNAME

    return Path.home() / _DEFAULT_DIRNAME / "logs" / _DEFAULT_LOGNAME


def _should_add_console_handler(handlers: Iterable[logging.Handler], stream: TextIO) -> bool:
    for handler in handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.FileHandler
        ):
            if handler.stream is stream:
                return False
    return True


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`ensure_app_logging`."""

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER, _CONSOLE_HANDLER, _CURRENT_VERBOSITY

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            try:
                handler.close()
            except Exception:  # pragma: no cover - close should rarely fail
                pass

    _CONFIGURED = False
    _LOG_PATH = None
    _FILE_HANDLER = None
    _CONSOLE_HANDLER = None
    _CURRENT_VERBOSITY = _DEFAULT_VERBOSITY
