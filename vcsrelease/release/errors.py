"""Error types for release runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from vcsrelease.core.errors import ErrorCode
from vcsrelease.release.model import ReleaseStep

CoordinatorErrorKind = Literal[
    "configuration",
    "vcs_operation",
    "rollback",
    "invalid_sequence",
]


@dataclass(frozen=True, slots=True)
class CoordinatorError:
    """Error reported by a lifecycle call.

    kinds:
    - configuration: branch, remote or credentials could not be resolved in
      prepare; the working copy was not touched.
    - vcs_operation: a VCS call failed during a forward step or a push.
    - rollback: a compensating call failed; the working copy may be left
      partially rolled back. `hint` lists what was not undone.
    - invalid_sequence: lifecycle call out of order, repeated, or issued after
      the run terminated. No VCS call was made.
    """

    kind: CoordinatorErrorKind
    message: str
    hint: str | None = None
    step: ReleaseStep | None = None

    def pretty(self) -> str:
        prefix = f"{self.step}: " if self.step is not None else ""
        if self.hint:
            return f"{prefix}{self.message} (hint: {self.hint})"
        return f"{prefix}{self.message}"

    @property
    def exit_code(self) -> ErrorCode:
        match self.kind:
            case "configuration":
                return ErrorCode.CONFIG_ERROR
            case "vcs_operation":
                return ErrorCode.VCS_ERROR
            case "rollback":
                return ErrorCode.ROLLBACK_ERROR
            case "invalid_sequence":
                return ErrorCode.USER_ERROR
