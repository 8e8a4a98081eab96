"""Drive a complete release run from the command line.

When vcsrelease runs outside a build server, it plays the build server's
part: it runs the user's version-bump and build commands between the
coordinator's lifecycle calls, tells the coordinator whether the bumps
changed any files, and reports the final build result.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from vcsrelease.core.errors import ErrorCode
from vcsrelease.core.result import Err, Ok, Result
from vcsrelease.output.console import ConsoleProtocol, Style
from vcsrelease.platform.process import ProcessError, run_silent
from vcsrelease.release.build import BuildResult, ProcessBuildOutcome
from vcsrelease.release.coordinator import ReleaseCoordinator, ReleaseOutcome
from vcsrelease.release.errors import CoordinatorError
from vcsrelease.vcs.manager import VcsError

__all__ = ["ReleaseCommands", "RunReport", "parse_command", "run_release"]

ChangeCheck = Callable[[], Result[bool, VcsError]]
CommandRunner = Callable[[list[str], Path], Result[None, ProcessError]]


def parse_command(text: str | None) -> list[str] | None:
    if text is None or not text.strip():
        return None
    return shlex.split(text)


@dataclass(frozen=True, slots=True)
class ReleaseCommands:
    """User commands run between lifecycle calls. None means "skip"."""

    release_version: list[str] | None = None  # switch files to the release version
    build: list[str] | None = None  # build the release version
    development_version: list[str] | None = None  # switch files to the next dev version


@dataclass(frozen=True, slots=True)
class RunReport:
    """How a release run ended.

    Attributes:
        outcome: What build_completed did, None if it never ran or failed
        build_result: Result reported to the coordinator
        error: First error of the run; a rollback error always wins
    """

    outcome: ReleaseOutcome | None
    build_result: BuildResult
    error: CoordinatorError | None = None

    @property
    def exit_code(self) -> ErrorCode:
        if self.error is not None:
            return self.error.exit_code
        if self.outcome == "published":
            return ErrorCode.OK
        return ErrorCode.BUILD_FAILED


def _run_user_command(cmd: list[str], cwd: Path) -> Result[None, ProcessError]:
    return run_silent(cmd, cwd=cwd)


def run_release(
    *,
    coordinator: ReleaseCoordinator,
    build: ProcessBuildOutcome,
    has_changes: ChangeCheck,
    commands: ReleaseCommands,
    repo_root: Path,
    console: ConsoleProtocol,
    run_command: CommandRunner = _run_user_command,
) -> RunReport:
    """Run all lifecycle steps, then publish or roll back.

    A failing step or command stops the forward sequence; build_completed is
    still called so that the coordinator undoes whatever was done.
    """
    prepared = coordinator.prepare()
    if isinstance(prepared, Err):
        # Nothing was touched, so there is nothing to complete.
        return RunReport(outcome=None, build_result=BuildResult.NOT_BUILT, error=prepared.error)

    forward_error = _forward_steps(
        coordinator=coordinator,
        build=build,
        has_changes=has_changes,
        commands=commands,
        repo_root=repo_root,
        console=console,
        run_command=run_command,
    )
    if forward_error is not None:
        build.record(BuildResult.FAILURE)

    completed = coordinator.build_completed()
    if isinstance(completed, Err):
        return RunReport(outcome=None, build_result=build.result(), error=completed.error)
    return RunReport(outcome=completed.value, build_result=build.result(), error=forward_error)


def _forward_steps(
    *,
    coordinator: ReleaseCoordinator,
    build: ProcessBuildOutcome,
    has_changes: ChangeCheck,
    commands: ReleaseCommands,
    repo_root: Path,
    console: ConsoleProtocol,
    run_command: CommandRunner,
) -> CoordinatorError | None:
    """Steps 2-6. Returns the coordinator error that stopped them, if any.

    A failing user command records FAILURE on `build` and stops the sequence
    without a coordinator error.
    """

    def user_step(cmd: list[str] | None, label: str) -> bool:
        if cmd is None:
            return True
        console.print(f"$ {shlex.join(cmd)}", Style.DIM)
        result = run_command(cmd, repo_root)
        if isinstance(result, Err):
            console.error(f"{label} failed: {result.error}")
            build.record(BuildResult.FAILURE)
            return False
        return True

    def modified() -> Result[bool, CoordinatorError]:
        changed = has_changes()
        if isinstance(changed, Err):
            return Err(
                CoordinatorError(
                    kind="vcs_operation",
                    message=changed.error.message,
                    hint=changed.error.hint,
                )
            )
        return Ok(changed.value)

    step = coordinator.before_release_version_change()
    if isinstance(step, Err):
        return step.error

    if not user_step(commands.release_version, "release version change"):
        return None
    changed = modified()
    if isinstance(changed, Err):
        return changed.error
    step = coordinator.after_release_version_change(changed.value)
    if isinstance(step, Err):
        return step.error

    if not user_step(commands.build, "release build"):
        return None
    step = coordinator.after_successful_release_version_build()
    if isinstance(step, Err):
        return step.error

    step = coordinator.before_development_version_change()
    if isinstance(step, Err):
        return step.error

    if not user_step(commands.development_version, "development version change"):
        return None
    changed = modified()
    if isinstance(changed, Err):
        return changed.error
    step = coordinator.after_development_version_change(changed.value)
    if isinstance(step, Err):
        return step.error

    return None
