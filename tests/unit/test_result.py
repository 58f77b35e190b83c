from __future__ import annotations

import pytest

from shared.result import Attempt, Result, first_ok


def test_result_ok_and_err() -> None:
    assert Result.ok(3).unwrap() == 3
    failure: Result[int, str] = Result.err("boom")
    assert failure.is_err()
    with pytest.raises(RuntimeError, match="boom"):
        failure.unwrap()


def test_first_ok_stops_at_first_success() -> None:
    calls: list[str] = []

    def attempt(name: str, result: Result[int, str]) -> Attempt[int, str]:
        def run() -> Result[int, str]:
            calls.append(name)
            return result

        return Attempt(name, run)

    outcome = first_ok(
        [
            attempt("a", Result.err("no a")),
            attempt("b", Result.ok(2)),
            attempt("c", Result.ok(3)),
        ]
    )

    assert outcome.winner == "b"
    assert outcome.result.unwrap() == 2
    assert outcome.failures == [("a", "no a")]
    assert calls == ["a", "b"]


def test_first_ok_reports_last_error_when_all_fail() -> None:
    outcome = first_ok(
        [
            Attempt("a", lambda: Result.err("first")),
            Attempt("b", lambda: Result.err("second")),
        ]
    )

    assert outcome.winner is None
    assert outcome.result.error == "second"
    assert [name for name, _ in outcome.failures] == ["a", "b"]


def test_first_ok_requires_attempts() -> None:
    with pytest.raises(ValueError):
        first_ok([])
