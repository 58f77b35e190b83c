from __future__ import annotations

import io
import os
import signal
import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

from services.launcher import deliver_signal_to_self, detect_target, forward_signals, run
from services.launcher.cli import main
from tests.unit.launcher_test_utils import LINUX_X64, install_binary, nested_bin_dir

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX process semantics")

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _wait_for(path: Path, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if path.exists():
            return True
        time.sleep(0.05)
    return False


def test_exit_code_is_mirrored(tmp_path: Path) -> None:
    install_binary(nested_bin_dir(tmp_path, LINUX_X64), "crush", "#!/bin/sh\nexit 7\n")

    assert run([], target=LINUX_X64, package_root=tmp_path) == 7


def test_arguments_are_forwarded_verbatim(tmp_path: Path) -> None:
    record = tmp_path / "args.txt"
    script = f'#!/bin/sh\nfor arg in "$@"; do printf "%s\\n" "$arg" >> "{record}"; done\n'
    install_binary(nested_bin_dir(tmp_path, LINUX_X64), "crush", script)

    assert run(["--model", "gpt 4", ""], target=LINUX_X64, package_root=tmp_path) == 0
    assert record.read_text(encoding="utf-8") == "--model\ngpt 4\n\n"


def test_missing_binary_prints_guidance(tmp_path: Path) -> None:
    stderr = io.StringIO()

    assert run(["--help"], target=LINUX_X64, package_root=tmp_path, stderr=stderr) == 1

    message = stderr.getvalue()
    assert "Crush binary not found for linux-x64" in message
    assert "npm install @offlinecli/crush-linux-x64" in message
    assert "  - linux-x64, linux-arm64" in message
    assert "  - win32-x64, win32-arm64" in message


def test_unlaunchable_binary_reports_spawn_failure(tmp_path: Path) -> None:
    install_binary(nested_bin_dir(tmp_path, LINUX_X64), "crush", "not a program", mode=0o644)
    stderr = io.StringIO()

    assert run([], target=LINUX_X64, package_root=tmp_path, stderr=stderr) == 1
    assert stderr.getvalue().startswith("Failed to execute Crush:")


def test_cli_main_uses_package_root_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = detect_target()
    install_binary(nested_bin_dir(tmp_path, target), target.binary_name, "#!/bin/sh\nexit 3\n")
    monkeypatch.setenv("CRUSH_PACKAGE_ROOT", str(tmp_path))

    assert main([]) == 3


def test_deliver_signal_to_self_uses_default_disposition() -> None:
    calls: list[tuple[int, int]] = []
    previous = signal.getsignal(signal.SIGUSR1)
    signal.signal(signal.SIGUSR1, lambda *_: None)
    try:
        status = deliver_signal_to_self(signal.SIGUSR1, kill=lambda pid, sig: calls.append((pid, sig)))
        assert signal.getsignal(signal.SIGUSR1) == signal.SIG_DFL
    finally:
        signal.signal(signal.SIGUSR1, previous)

    assert calls == [(os.getpid(), signal.SIGUSR1)]
    assert status == 128 + signal.SIGUSR1


FORWARDED_SIGNAL_CASES = [
    pytest.param(signal.SIGTERM, "TERM", id="terminate"),
    pytest.param(signal.SIGINT, "INT", id="interrupt"),
]


@pytest.mark.parametrize(("signum", "_trap_name"), FORWARDED_SIGNAL_CASES)
def test_forward_signals_relays_to_child_and_restores_handlers(signum: int, _trap_name: str) -> None:
    child_code = textwrap.dedent(
        f"""
        import signal, sys, time
        signal.signal({int(signum)}, lambda *_: sys.exit(42))
        print("ready", flush=True)
        while True:
            time.sleep(0.05)
        """
    )
    previous = signal.getsignal(signum)
    child = subprocess.Popen([sys.executable, "-c", child_code], stdout=subprocess.PIPE, text=True)
    try:
        assert child.stdout is not None
        assert child.stdout.readline().strip() == "ready"
        with forward_signals(child):
            os.kill(os.getpid(), signum)
            assert child.wait(timeout=10) == 42
    finally:
        if child.poll() is None:
            child.kill()
            child.wait()
        if child.stdout is not None:
            child.stdout.close()

    assert signal.getsignal(signum) == previous


@pytest.mark.parametrize(("signum", "trap_name"), FORWARDED_SIGNAL_CASES)
def test_launcher_dies_from_the_signal_that_killed_the_child(
    tmp_path: Path, signum: int, trap_name: str
) -> None:
    target = detect_target()
    ready = tmp_path / "ready"
    caught = tmp_path / "caught"
    script = textwrap.dedent(
        f"""\
        #!/bin/sh
        trap 'touch "{caught}"; trap - {trap_name}; kill -{trap_name} $$' {trap_name}
        sleep 0.5
        touch "{ready}"
        while :; do sleep 0.1; done
        """
    )
    install_binary(nested_bin_dir(tmp_path, target), target.binary_name, script)

    env = dict(os.environ)
    env["CRUSH_PACKAGE_ROOT"] = str(tmp_path)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
    launcher = subprocess.Popen(
        [sys.executable, "-c", "import sys; from services.launcher.cli import main; sys.exit(main(sys.argv[1:]))"],
        env=env,
        cwd=tmp_path,
        stdout=subprocess.DEVNULL,
        # A background test runner may start us with SIGINT ignored; the shell
        # child cannot trap a signal that was ignored when it started.
        preexec_fn=lambda: signal.signal(signal.SIGINT, signal.SIG_DFL),
    )
    try:
        assert _wait_for(ready), "child never became ready"
        launcher.send_signal(signum)
        returncode = launcher.wait(timeout=10)
    finally:
        if launcher.poll() is None:
            launcher.kill()
            launcher.wait()

    assert _wait_for(caught, timeout=2)
    assert returncode == -signum
