"""Access to the enclosing build.

The coordinator never talks to a build server directly. It reads two things
through a BuildOutcome: the environment captured when the build started
(which holds the checked-out branch) and the final build result.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

__all__ = [
    "BRANCH_ENV_VAR",
    "BuildOutcome",
    "BuildResult",
    "ProcessBuildOutcome",
    "StaticBuildOutcome",
]

# Environment key holding the branch the build checked out (e.g. "origin/main").
BRANCH_ENV_VAR = "GIT_BRANCH"


class BuildResult(Enum):
    """Final result of a build, from best to worst."""

    SUCCESS = 0
    UNSTABLE = 1
    FAILURE = 2
    NOT_BUILT = 3
    ABORTED = 4

    def __str__(self) -> str:
        return self.name

    @property
    def is_success(self) -> bool:
        """Only SUCCESS publishes; every other result rolls back."""
        return self is BuildResult.SUCCESS

    def combine(self, other: BuildResult) -> BuildResult:
        """Worst of the two results."""
        return self if self.value >= other.value else other

    @classmethod
    def parse(cls, text: str) -> BuildResult | None:
        key = text.strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            return None


class BuildOutcome(Protocol):
    def environment(self) -> Mapping[str, str]: ...

    def result(self) -> BuildResult: ...


@dataclass(frozen=True, slots=True)
class StaticBuildOutcome:
    """Build outcome with fixed values, for embedding and tests."""

    env: Mapping[str, str]
    final_result: BuildResult = BuildResult.SUCCESS

    def environment(self) -> Mapping[str, str]:
        return self.env

    def result(self) -> BuildResult:
        return self.final_result


@dataclass
class ProcessBuildOutcome:
    """Build outcome assembled while the CLI runs the build steps itself.

    The environment is snapshotted at construction. The result starts as
    SUCCESS and only ever gets worse as steps record their results.
    """

    env: Mapping[str, str]
    _result: BuildResult = field(default=BuildResult.SUCCESS, init=False)

    def __post_init__(self) -> None:
        self.env = dict(self.env)

    def record(self, result: BuildResult) -> None:
        self._result = self._result.combine(result)

    def environment(self) -> Mapping[str, str]:
        return self.env

    def result(self) -> BuildResult:
        return self._result
