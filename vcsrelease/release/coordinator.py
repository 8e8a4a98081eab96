"""Release coordinator.

Moves a working copy through a release and undoes it if the build fails.

Every local mutation (checkout, commit, tag) happens eagerly while the build
runs; nothing reaches the remote until build_completed sees a successful
result. If the result is anything else, build_completed rolls the working
copy back to the revision recorded in prepare, so a failed release never
touches shared history.

Lifecycle (each call exactly once, in this order):

    coordinator = ReleaseCoordinator(vcs, config, build, console)
    coordinator.prepare()
    coordinator.before_release_version_change()
    coordinator.after_release_version_change(modified=True)
    coordinator.after_successful_release_version_build()
    coordinator.before_development_version_change()
    coordinator.after_development_version_change(modified=True)
    coordinator.build_completed()

If a step fails, the remaining forward steps are refused but build_completed
is still accepted and rolls back whatever was done. A coordinator represents
one run and must not be reused.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal

from vcsrelease.core.result import Err, Ok, Result
from vcsrelease.output.console import ConsoleProtocol
from vcsrelease.release.build import BRANCH_ENV_VAR, BuildOutcome
from vcsrelease.release.errors import CoordinatorError
from vcsrelease.release.model import (
    ReleaseConfig,
    ReleaseStep,
    RunSnapshot,
    RunState,
    normalize_branch,
)
from vcsrelease.vcs.manager import VcsError, VcsManager

__all__ = ["ReleaseCoordinator", "ReleaseOutcome"]

ReleaseOutcome = Literal["published", "rolled_back"]

_Compensation = tuple[str, Callable[[], Result[None, VcsError]]]


class ReleaseCoordinator:
    """Sequences VCS operations for one release run.

    Attributes are private; use `snapshot` to inspect the run.
    """

    def __init__(
        self,
        vcs: VcsManager,
        config: ReleaseConfig,
        build: BuildOutcome,
        console: ConsoleProtocol,
    ) -> None:
        self._vcs = vcs
        self._config = config
        self._build = build
        self._console = console
        self._state = RunState()
        self._last_step: ReleaseStep | None = None
        self._forward_step: ReleaseStep | None = None  # last step before build_completed
        self._failed = False  # prepare failed, nothing to undo
        self._aborted = False  # a forward step failed, rollback pending
        self._completed = False

    @property
    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            last_step=self._last_step,
            failed=self._failed or self._aborted,
            original_branch=self._state.original_branch,
            original_revision=self._state.original_revision,
            release_branch_created=self._state.release_branch_created,
            tag_created=self._state.tag_created,
        )

    # -- Lifecycle --------------------------------------------------------

    def prepare(self) -> Result[None, CoordinatorError]:
        step = ReleaseStep.PREPARE
        entered = self._enter(step)
        if isinstance(entered, Err):
            return entered

        ref = self._build.environment().get(BRANCH_ENV_VAR, "").strip()
        branch = normalize_branch(ref)
        if not branch:
            return self._fail_prepare(
                f"cannot determine the checked-out branch ({BRANCH_ENV_VAR} is not set)"
            )

        revision = self._vcs.resolve_revision(ref)
        if isinstance(revision, Err):
            return self._fail_prepare(revision.error.message, revision.error.hint)

        credentials = self._vcs.set_credentials(self._config.credentials_ref)
        if isinstance(credentials, Err):
            return self._fail_prepare(credentials.error.message, credentials.error.hint)

        repository = self._vcs.resolve_remote(self._config.target_remote)
        if isinstance(repository, Err):
            return self._fail_prepare(repository.error.message, repository.error.hint)

        self._state.original_branch = branch
        self._state.original_ref = ref
        self._state.original_revision = revision.value
        self._state.repository = repository.value
        self._log(f"releasing from {branch} at {revision.value[:8]} to {repository.value.url}")
        return Ok(None)

    def before_release_version_change(self) -> Result[None, CoordinatorError]:
        step = ReleaseStep.BEFORE_RELEASE_VERSION_CHANGE
        entered = self._enter(step)
        if isinstance(entered, Err):
            return entered

        release_branch = self._config.release_branch
        if release_branch is not None:
            self._log(f"creating release branch {release_branch}")
            result = self._vcs.checkout(release_branch, create=True)
            if isinstance(result, Err):
                return self._fail_step(step, result.error)
            self._state.release_branch_created = True
            return Ok(None)

        self._log(f"checking out {self._state.original_branch}")
        result = self._vcs.checkout(self._state.original_branch, create=False)
        if isinstance(result, Err):
            return self._fail_step(step, result.error)
        return Ok(None)

    def after_release_version_change(self, modified: bool) -> Result[None, CoordinatorError]:
        step = ReleaseStep.AFTER_RELEASE_VERSION_CHANGE
        entered = self._enter(step)
        if isinstance(entered, Err):
            return entered

        if modified:
            self._log("committing release version")
            result = self._vcs.commit_working_copy(self._config.tag_comment)
            if isinstance(result, Err):
                return self._fail_step(step, result.error)

        tag_name = self._config.tag_name
        if self._config.create_tag and tag_name is not None:
            # A tag may mark an unmodified tree.
            self._log(f"creating tag {tag_name}")
            result = self._vcs.create_tag(tag_name, self._config.tag_comment)
            if isinstance(result, Err):
                return self._fail_step(step, result.error)
            self._state.tag_created = True

        return Ok(None)

    def after_successful_release_version_build(self) -> Result[None, CoordinatorError]:
        """Hook after the release version built successfully.

        Issues no VCS operation.
        """
        return self._enter(ReleaseStep.AFTER_SUCCESSFUL_RELEASE_VERSION_BUILD)

    def before_development_version_change(self) -> Result[None, CoordinatorError]:
        step = ReleaseStep.BEFORE_DEVELOPMENT_VERSION_CHANGE
        entered = self._enter(step)
        if isinstance(entered, Err):
            return entered

        # Without a release branch we are still on the original branch.
        if not self._state.release_branch_created:
            return Ok(None)

        self._log(f"returning to {self._state.original_branch}")
        result = self._vcs.checkout(self._state.original_branch, create=False)
        if isinstance(result, Err):
            return self._fail_step(step, result.error)
        return Ok(None)

    def after_development_version_change(self, modified: bool) -> Result[None, CoordinatorError]:
        step = ReleaseStep.AFTER_DEVELOPMENT_VERSION_CHANGE
        entered = self._enter(step)
        if isinstance(entered, Err):
            return entered

        if not modified:
            return Ok(None)

        self._log("committing next development version")
        result = self._vcs.commit_working_copy(self._config.next_dev_commit_comment)
        if isinstance(result, Err):
            return self._fail_step(step, result.error)
        return Ok(None)

    def build_completed(self) -> Result[ReleaseOutcome, CoordinatorError]:
        """Publish on success, roll back otherwise.

        Publishing requires a SUCCESS build result and all forward steps to
        have completed; a run that was aborted or cut short is rolled back
        whatever the build reports.
        """
        step = ReleaseStep.BUILD_COMPLETED
        entered = self._enter(step)
        if isinstance(entered, Err):
            return entered
        self._completed = True

        result = self._build.result()
        finished = (
            not self._aborted
            and self._forward_step is ReleaseStep.AFTER_DEVELOPMENT_VERSION_CHANGE
        )
        if result.is_success and finished:
            published = self._publish()
            if isinstance(published, Err):
                return published
            return Ok("published")

        if result.is_success:
            self._console.warning("[release] release run did not finish, rolling back")
        else:
            self._log(f"build result is {result}, rolling back")

        rolled_back = self._rollback()
        if isinstance(rolled_back, Err):
            return rolled_back
        return Ok("rolled_back")

    # -- Internals --------------------------------------------------------

    def _publish(self) -> Result[None, CoordinatorError]:
        repository = self._state.repository
        if repository is None:
            return Err(
                CoordinatorError(
                    kind="invalid_sequence",
                    message="no remote resolved for this run",
                    step=ReleaseStep.BUILD_COMPLETED,
                )
            )

        branches: list[str] = []
        if self._state.release_branch_created and self._config.release_branch is not None:
            branches.append(self._config.release_branch)
        branches.append(self._state.original_branch)

        for branch in branches:
            self._log(f"pushing {branch} to {repository.url}")
            pushed = self._vcs.push(repository, branch)
            if isinstance(pushed, Err):
                self._console.error(f"[release] push failed: {pushed.error.pretty()}")
                return Err(
                    CoordinatorError(
                        kind="vcs_operation",
                        message=pushed.error.message,
                        hint=pushed.error.hint,
                        step=ReleaseStep.BUILD_COMPLETED,
                    )
                )

        self._console.success(f"[release] published {', '.join(branches)}")
        return Ok(None)

    def _compensations(self) -> list[_Compensation]:
        """Undo steps, in the order they must run.

        The original branch is checked out first (a checked-out branch cannot
        be deleted) and reset last (the reset applies to the checked-out branch).
        """
        state = self._state
        original = state.original_branch
        steps: list[_Compensation] = [
            (f"checkout {original}", lambda: self._vcs.checkout(original, create=False)),
        ]

        release_branch = self._config.release_branch
        if state.release_branch_created and release_branch is not None:
            steps.append(
                (
                    f"delete branch {release_branch}",
                    lambda: self._vcs.delete_local_branch(release_branch),
                )
            )

        tag_name = self._config.tag_name
        if state.tag_created and tag_name is not None:
            steps.append((f"delete tag {tag_name}", lambda: self._vcs.delete_local_tag(tag_name)))

        revision = state.original_revision
        steps.append(
            (
                f"reset {original} to {revision[:8]}",
                lambda: self._vcs.revert_working_copy_to(original, revision),
            )
        )
        return steps

    def _rollback(self) -> Result[None, CoordinatorError]:
        compensations = self._compensations()
        for index, (label, undo) in enumerate(compensations):
            self._log(label)
            result = undo()
            if isinstance(result, Err):
                pending = [name for name, _ in compensations[index:]]
                self._console.error(f"[release] rollback failed: {result.error.pretty()}")
                self._console.error(f"[release] not undone: {'; '.join(pending)}")
                return Err(
                    CoordinatorError(
                        kind="rollback",
                        message=f"rollback failed at '{label}': {result.error.pretty()}",
                        hint=f"not undone: {'; '.join(pending)}",
                        step=ReleaseStep.BUILD_COMPLETED,
                    )
                )

        self._console.warning(
            f"[release] rolled back {self._state.original_branch} "
            f"to {self._state.original_revision[:8]}; nothing was pushed"
        )
        return Ok(None)

    def _enter(self, step: ReleaseStep) -> Result[None, CoordinatorError]:
        """Check that `step` may run now, and record it."""
        if self._completed:
            return self._out_of_sequence(step, "release run already completed")
        if self._failed:
            return self._out_of_sequence(step, "release run failed during prepare")

        if step is ReleaseStep.BUILD_COMPLETED:
            if self._last_step is None:
                return self._out_of_sequence(step, "prepare has not run")
            self._forward_step = self._last_step
            self._last_step = step
            return Ok(None)

        if self._aborted:
            return self._out_of_sequence(
                step, "release run was aborted; only build-completed may follow"
            )

        expected = ReleaseStep.PREPARE if self._last_step is None else ReleaseStep(self._last_step + 1)
        if step is not expected:
            return self._out_of_sequence(step, f"expected {expected}")

        self._last_step = step
        return Ok(None)

    def _out_of_sequence(self, step: ReleaseStep, reason: str) -> Err[CoordinatorError]:
        return Err(
            CoordinatorError(
                kind="invalid_sequence",
                message=f"{step} not allowed: {reason}",
                step=step,
            )
        )

    def _fail_prepare(self, message: str, hint: str | None = None) -> Err[CoordinatorError]:
        self._failed = True
        error = CoordinatorError(
            kind="configuration",
            message=message,
            hint=hint,
            step=ReleaseStep.PREPARE,
        )
        self._console.error(f"[release] {error.pretty()}")
        return Err(error)

    def _fail_step(self, step: ReleaseStep, error: VcsError) -> Err[CoordinatorError]:
        self._aborted = True
        self._console.error(f"[release] {step} failed: {error.pretty()}")
        return Err(
            CoordinatorError(
                kind="vcs_operation",
                message=error.message,
                hint=error.hint,
                step=step,
            )
        )

    def _log(self, message: str) -> None:
        self._console.info(f"[release] {message}")
