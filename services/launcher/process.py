"""Run the resolved binary as a transparent child process.

Standard streams are inherited so TTY behaviour passes straight through.
Interrupt, terminate and hangup signals received by the launcher are forwarded
to the child, and when the child dies from a signal the launcher re-delivers
that same signal to itself so shells see the real cause of death.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Sequence, TextIO

from services.launcher.messages import not_found_message, spawn_failure_message
from services.launcher.models import LaunchTarget, ResolutionError, SpawnError
from services.launcher.resolution import default_package_root, detect_target, require_binary


_LOGGER = logging.getLogger(__name__)

FORWARDED_SIGNAL_NAMES = ("SIGINT", "SIGTERM", "SIGHUP")
FORWARDED_SIGNALS: tuple[int, ...] = tuple(
    getattr(signal, name) for name in FORWARDED_SIGNAL_NAMES if hasattr(signal, name)
)
SIGNAL_EXIT_BASE = 128


def spawn_binary(binary: Path, arguments: Sequence[str]) -> subprocess.Popen:
    """Start ``binary`` with inherited stdio and ``arguments`` forwarded verbatim."""

    argv = [str(binary), *arguments]
    _LOGGER.debug("Spawning %s", argv)
    try:
        return subprocess.Popen(argv)
    except OSError as exc:
        raise SpawnError(str(exc), binary=binary) from exc


@contextmanager
def forward_signals(
    child: subprocess.Popen, signals: Sequence[int] = FORWARDED_SIGNALS
) -> Iterator[None]:
    """Relay ``signals`` received by this process to ``child`` while active.

    Handlers can only be installed from the main thread; elsewhere the
    signals are left alone.
    """

    def _forward(signum: int, _frame: object) -> None:
        if child.poll() is not None:
            return
        try:
            child.send_signal(signum)
        except (OSError, ValueError):
            _LOGGER.debug("Could not forward signal %s to child %s", signum, child.pid)

    previous: dict[int, object] = {}
    for signum in signals:
        try:
            previous[signum] = signal.signal(signum, _forward)
        except (OSError, ValueError):
            _LOGGER.debug("Cannot install forwarding handler for signal %s", signum)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            try:
                signal.signal(signum, handler)  # type: ignore[arg-type]
            except (OSError, ValueError, TypeError):
                pass


def deliver_signal_to_self(
    signum: int, *, kill: Callable[[int, int], None] = os.kill
) -> int:
    """Terminate this process with ``signum`` using the default disposition.

    Returns ``128 + signum`` if the process is still alive afterwards (for
    example on platforms where the signal cannot be raised this way) so the
    caller can exit with the conventional shell status instead.
    """

    try:
        signal.signal(signum, signal.SIG_DFL)
    except (OSError, ValueError):
        pass
    try:
        kill(os.getpid(), signum)
    except OSError:
        _LOGGER.debug("Could not re-deliver signal %s", signum)
    return SIGNAL_EXIT_BASE + signum


def run(
    arguments: Sequence[str],
    *,
    target: LaunchTarget | None = None,
    package_root: Path | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Resolve the platform binary, run it and mirror its outcome.

    Returns the child's exit status.  A child killed by a signal makes this
    process die from the same signal; the return value only matters if that
    re-delivery does not terminate the process.
    """

    stderr = stderr or sys.stderr
    target = target or detect_target()
    package_root = package_root if package_root is not None else default_package_root()

    try:
        binary = require_binary(target, package_root)
    except ResolutionError as exc:
        _LOGGER.debug("Searched %s", [str(path) for path in exc.searched])
        print(not_found_message(target), file=stderr)
        return 1

    try:
        child = spawn_binary(binary, arguments)
    except SpawnError as exc:
        print(spawn_failure_message(target, exc), file=stderr)
        return 1

    with forward_signals(child):
        returncode = child.wait()

    if returncode < 0:
        _LOGGER.debug("Child exited from signal %s; re-delivering", -returncode)
        return deliver_signal_to_self(-returncode)
    return returncode


__all__ = [
    "FORWARDED_SIGNALS",
    "deliver_signal_to_self",
    "forward_signals",
    "run",
    "spawn_binary",
]
