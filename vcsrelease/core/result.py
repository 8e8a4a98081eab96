"""Result type for explicit error handling.

Every step of a release run can fail for reasons outside our control (a git
command exits non-zero, a config file is malformed, a remote is unknown).
Those operations return a Result instead of raising, so the caller decides
what a failure means for the run: abort, roll back, or report.

Callers narrow with isinstance or a match statement:

    match vcs.resolve_remote("origin"):
        case Ok(repo):
            print(f"Publishing to {repo.url}")
        case Err(error):
            print(f"Cannot publish: {error.pretty()}")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import NoReturn, TypeGuard

__all__ = ["Err", "Ok", "Result", "is_err", "is_ok"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def unwrap(self) -> T:
        return self.value

    def unwrap_or[D](self, default: D) -> T:
        return self.value

    def map_err[F](self, f: Callable[[object], F]) -> Ok[T]:
        return self

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def unwrap(self) -> NoReturn:
        """Raise ValueError. Only for failures that are programming errors."""
        raise ValueError(f"called unwrap on Err: {self.error}")

    def unwrap_or[D](self, default: D) -> D:
        return default

    def map_err[F](self, f: Callable[[E], F]) -> Err[F]:
        """Translate the payload, e.g. a VcsError into a CoordinatorError."""
        return Err(f(self.error))

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    return isinstance(result, Err)
