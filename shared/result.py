"""Result helpers for operations that try several approaches in turn."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Optional, TypeVar


T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Result(Generic[T, E]):
    """Discriminated union capturing either a success value or an error."""

    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        if self.error is not None:
            raise RuntimeError(f"Tried to unwrap error result: {self.error}")
        assert self.value is not None
        return self.value


@dataclass(frozen=True)
class Attempt(Generic[T, E]):
    """A named step in an ordered fallback chain."""

    name: str
    run: Callable[[], Result[T, E]]


@dataclass
class ChainOutcome(Generic[T, E]):
    """Outcome of :func:`first_ok`: the winning attempt plus earlier failures."""

    result: Result[T, E]
    winner: str | None = None
    failures: list[tuple[str, E]] = field(default_factory=list)


def first_ok(attempts: Iterable[Attempt[T, E]]) -> ChainOutcome[T, E]:
    """Run ``attempts`` in order and stop at the first successful one.

    When every attempt fails the outcome carries the last error, and
    ``failures`` lists each attempt's error in order.
    """

    failures: list[tuple[str, E]] = []
    last: Result[T, E] | None = None
    for attempt in attempts:
        last = attempt.run()
        if last.is_ok():
            return ChainOutcome(result=last, winner=attempt.name, failures=failures)
        assert last.error is not None
        failures.append((attempt.name, last.error))
    if last is None:
        raise ValueError("first_ok() requires at least one attempt")
    return ChainOutcome(result=last, winner=None, failures=failures)


__all__ = ["Attempt", "ChainOutcome", "Result", "first_ok"]
