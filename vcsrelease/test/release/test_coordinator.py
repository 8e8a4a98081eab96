"""Tests for release/coordinator.py.

The VCS fake records every call. Tests assert the exact call sequence, not
just counts: an extra push or commit is as much a bug as a missing one.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from vcsrelease.core.result import Err, Ok, Result
from vcsrelease.output.console import MockConsole, Style
from vcsrelease.release.build import BuildResult, StaticBuildOutcome
from vcsrelease.release.coordinator import ReleaseCoordinator, ReleaseOutcome
from vcsrelease.release.errors import CoordinatorError
from vcsrelease.release.model import ReleaseConfig, ReleaseStep
from vcsrelease.vcs.manager import RepositoryHandle, VcsError

CHECKOUT_BRANCH_WITH_ORIGIN = "origin/build-branch"
CHECKOUT_BRANCH = "build-branch"
CHECKOUT_REVISION = "cafecafecafecafecafecafecafecafecafecafe"
TAG_COMMENT = "bla bla release version"
DEV_COMMENT = "next dev version"
RELEASE_BRANCH = "release-v2.1"
TAG = "v2.1"
REPO = RepositoryHandle(name="origin", url="git://foobar")

Call = tuple[object, ...]


def _empty_calls() -> list[Call]:
    return []


def _no_failures() -> dict[str, VcsError]:
    return {}


@dataclass
class RecordingVcs:
    """VcsManager fake: records calls, fails the operations named in fail_on."""

    calls: list[Call] = field(default_factory=_empty_calls)
    fail_on: dict[str, VcsError] = field(default_factory=_no_failures)

    def _call(self, name: str, *args: object) -> Result[None, VcsError]:
        self.calls.append((name, *args))
        if name in self.fail_on:
            return Err(self.fail_on[name])
        return Ok(None)

    def resolve_remote(self, name: str) -> Result[RepositoryHandle, VcsError]:
        result = self._call("resolve_remote", name)
        if isinstance(result, Err):
            return result
        return Ok(REPO)

    def set_credentials(self, ref: str | None) -> Result[None, VcsError]:
        return self._call("set_credentials", ref)

    def resolve_revision(self, ref: str) -> Result[str, VcsError]:
        result = self._call("resolve_revision", ref)
        if isinstance(result, Err):
            return result
        return Ok(CHECKOUT_REVISION)

    def checkout(self, branch: str, *, create: bool) -> Result[None, VcsError]:
        return self._call("checkout", branch, create)

    def commit_working_copy(self, message: str) -> Result[None, VcsError]:
        return self._call("commit", message)

    def create_tag(self, name: str, message: str) -> Result[None, VcsError]:
        return self._call("create_tag", name, message)

    def push(self, repo: RepositoryHandle, branch: str) -> Result[None, VcsError]:
        return self._call("push", repo, branch)

    def delete_local_branch(self, name: str) -> Result[None, VcsError]:
        return self._call("delete_local_branch", name)

    def delete_local_tag(self, name: str) -> Result[None, VcsError]:
        return self._call("delete_local_tag", name)

    def revert_working_copy_to(self, branch: str, revision: str) -> Result[None, VcsError]:
        return self._call("revert", branch, revision)

    @property
    def after_prepare(self) -> list[Call]:
        """Calls issued after the three prepare calls."""
        return self.calls[3:]


def _config(*, release_branch: str | None = None, tag: str | None = None) -> ReleaseConfig:
    return ReleaseConfig(
        release_branch=release_branch,
        create_tag=tag is not None,
        tag_name=tag,
        tag_comment=TAG_COMMENT,
        next_dev_commit_comment=DEV_COMMENT,
        target_remote="origin",
        credentials_ref="release-bot",
    )


def _coordinator(
    config: ReleaseConfig,
    result: BuildResult,
    vcs: RecordingVcs | None = None,
    console: MockConsole | None = None,
) -> tuple[ReleaseCoordinator, RecordingVcs]:
    vcs = vcs or RecordingVcs()
    build = StaticBuildOutcome(env={"GIT_BRANCH": CHECKOUT_BRANCH_WITH_ORIGIN}, final_result=result)
    return ReleaseCoordinator(vcs, config, build, console or MockConsole()), vcs


def _run_all(
    coordinator: ReleaseCoordinator,
    *,
    release_modified: bool,
    dev_modified: bool,
) -> Result[ReleaseOutcome, CoordinatorError]:
    """Call all lifecycle steps in order."""
    assert isinstance(coordinator.prepare(), Ok)
    assert isinstance(coordinator.before_release_version_change(), Ok)
    assert isinstance(coordinator.after_release_version_change(release_modified), Ok)
    assert isinstance(coordinator.after_successful_release_version_build(), Ok)
    assert isinstance(coordinator.before_development_version_change(), Ok)
    assert isinstance(coordinator.after_development_version_change(dev_modified), Ok)
    return coordinator.build_completed()


def _rollback(*, delete_branch: bool, delete_tag: bool) -> list[Call]:
    calls: list[Call] = [("checkout", CHECKOUT_BRANCH, False)]
    if delete_branch:
        calls.append(("delete_local_branch", RELEASE_BRANCH))
    if delete_tag:
        calls.append(("delete_local_tag", TAG))
    calls.append(("revert", CHECKOUT_BRANCH, CHECKOUT_REVISION))
    return calls


# =============================================================================
# Prepare
# =============================================================================


class TestPrepare:
    def test_prepare_resolves_revision_credentials_and_remote(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)

        assert isinstance(coordinator.prepare(), Ok)

        assert vcs.calls == [
            ("resolve_revision", CHECKOUT_BRANCH_WITH_ORIGIN),
            ("set_credentials", "release-bot"),
            ("resolve_remote", "origin"),
        ]
        snapshot = coordinator.snapshot
        assert snapshot.original_branch == CHECKOUT_BRANCH
        assert snapshot.original_revision == CHECKOUT_REVISION
        assert snapshot.last_step is ReleaseStep.PREPARE

    def test_missing_branch_variable_is_configuration_error(self) -> None:
        vcs = RecordingVcs()
        build = StaticBuildOutcome(env={}, final_result=BuildResult.SUCCESS)
        coordinator = ReleaseCoordinator(vcs, _config(), build, MockConsole())

        result = coordinator.prepare()

        assert isinstance(result, Err)
        assert result.error.kind == "configuration"
        assert result.error.step is ReleaseStep.PREPARE
        assert vcs.calls == []

    def test_unresolvable_revision_is_configuration_error(self) -> None:
        vcs = RecordingVcs(fail_on={"resolve_revision": VcsError("rev-parse", "bad ref")})
        coordinator, _ = _coordinator(_config(), BuildResult.SUCCESS, vcs=vcs)

        result = coordinator.prepare()

        assert isinstance(result, Err)
        assert result.error.kind == "configuration"
        assert vcs.calls == [("resolve_revision", CHECKOUT_BRANCH_WITH_ORIGIN)]

    def test_unknown_remote_is_configuration_error(self) -> None:
        vcs = RecordingVcs(fail_on={"resolve_remote": VcsError("resolve-remote", "unknown remote")})
        coordinator, _ = _coordinator(_config(), BuildResult.SUCCESS, vcs=vcs)

        result = coordinator.prepare()

        assert isinstance(result, Err)
        assert result.error.kind == "configuration"
        assert "unknown remote" in result.error.message

    def test_failed_prepare_is_terminal(self) -> None:
        vcs = RecordingVcs(fail_on={"set_credentials": VcsError("credentials", "not found")})
        coordinator, _ = _coordinator(_config(), BuildResult.FAILURE, vcs=vcs)
        assert isinstance(coordinator.prepare(), Err)
        calls_after_prepare = list(vcs.calls)

        later = coordinator.before_release_version_change()
        completed = coordinator.build_completed()

        assert isinstance(later, Err)
        assert later.error.kind == "invalid_sequence"
        assert isinstance(completed, Err)
        assert completed.error.kind == "invalid_sequence"
        assert vcs.calls == calls_after_prepare


# =============================================================================
# Successful builds
# =============================================================================


class TestPublish:
    def test_release_branch_and_tag(self) -> None:
        coordinator, vcs = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.SUCCESS
        )

        result = _run_all(coordinator, release_modified=True, dev_modified=True)

        assert result == Ok("published")
        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("commit", TAG_COMMENT),
            ("create_tag", TAG, TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", DEV_COMMENT),
            ("push", REPO, RELEASE_BRANCH),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_release_branch_and_tag_without_version_changes(self) -> None:
        coordinator, vcs = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.SUCCESS
        )

        _run_all(coordinator, release_modified=False, dev_modified=False)

        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("create_tag", TAG, TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("push", REPO, RELEASE_BRANCH),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_release_branch_and_tag_only_release_version_changes(self) -> None:
        coordinator, vcs = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.SUCCESS
        )

        _run_all(coordinator, release_modified=True, dev_modified=False)

        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("commit", TAG_COMMENT),
            ("create_tag", TAG, TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("push", REPO, RELEASE_BRANCH),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_release_branch_and_tag_only_dev_version_changes(self) -> None:
        coordinator, vcs = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.SUCCESS
        )

        _run_all(coordinator, release_modified=False, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("create_tag", TAG, TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", DEV_COMMENT),
            ("push", REPO, RELEASE_BRANCH),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_release_branch_without_tag(self) -> None:
        coordinator, vcs = _coordinator(_config(release_branch=RELEASE_BRANCH), BuildResult.SUCCESS)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("commit", TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", DEV_COMMENT),
            ("push", REPO, RELEASE_BRANCH),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_tag_without_release_branch(self) -> None:
        coordinator, vcs = _coordinator(_config(tag=TAG), BuildResult.SUCCESS)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", TAG_COMMENT),
            ("create_tag", TAG, TAG_COMMENT),
            ("commit", DEV_COMMENT),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_no_release_branch_no_tag(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", TAG_COMMENT),
            ("commit", DEV_COMMENT),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_no_release_branch_no_tag_only_release_version_change(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)

        _run_all(coordinator, release_modified=True, dev_modified=False)

        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", TAG_COMMENT),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_no_release_branch_no_tag_only_dev_version_change(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)

        _run_all(coordinator, release_modified=False, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", DEV_COMMENT),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_no_release_branch_no_tag_no_version_change(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)

        result = _run_all(coordinator, release_modified=False, dev_modified=False)

        assert result == Ok("published")
        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("push", REPO, CHECKOUT_BRANCH),
        ]

    def test_publish_reports_success(self) -> None:
        console = MockConsole()
        coordinator, _ = _coordinator(
            _config(release_branch=RELEASE_BRANCH), BuildResult.SUCCESS, console=console
        )

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert console.count(Style.SUCCESS) == 1
        assert console.find(f"published {RELEASE_BRANCH}, {CHECKOUT_BRANCH}")

    def test_failed_push_is_reported_without_rollback(self) -> None:
        vcs = RecordingVcs(fail_on={"push": VcsError("push", "rejected", hint="non-fast-forward")})
        coordinator, _ = _coordinator(
            _config(release_branch=RELEASE_BRANCH), BuildResult.SUCCESS, vcs=vcs
        )

        result = _run_all(coordinator, release_modified=True, dev_modified=True)

        assert isinstance(result, Err)
        assert result.error.kind == "vcs_operation"
        assert result.error.step is ReleaseStep.BUILD_COMPLETED
        assert vcs.after_prepare[-1] == ("push", REPO, RELEASE_BRANCH)
        assert not any(call[0] in {"revert", "delete_local_branch"} for call in vcs.calls)


# =============================================================================
# Unsuccessful builds
# =============================================================================


class TestRollback:
    def test_release_branch_and_tag_aborted(self) -> None:
        coordinator, vcs = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.ABORTED
        )

        result = _run_all(coordinator, release_modified=True, dev_modified=True)

        assert result == Ok("rolled_back")
        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("commit", TAG_COMMENT),
            ("create_tag", TAG, TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", DEV_COMMENT),
            *_rollback(delete_branch=True, delete_tag=True),
        ]

    def test_release_branch_without_tag_failure(self) -> None:
        coordinator, vcs = _coordinator(_config(release_branch=RELEASE_BRANCH), BuildResult.FAILURE)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("commit", TAG_COMMENT),
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", DEV_COMMENT),
            *_rollback(delete_branch=True, delete_tag=False),
        ]

    def test_tag_without_release_branch_aborted(self) -> None:
        coordinator, vcs = _coordinator(_config(tag=TAG), BuildResult.ABORTED)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", TAG_COMMENT),
            ("create_tag", TAG, TAG_COMMENT),
            ("commit", DEV_COMMENT),
            *_rollback(delete_branch=False, delete_tag=True),
        ]

    def test_no_release_branch_no_tag_failure(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.FAILURE)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert vcs.after_prepare == [
            ("checkout", CHECKOUT_BRANCH, False),
            ("commit", TAG_COMMENT),
            ("commit", DEV_COMMENT),
            *_rollback(delete_branch=False, delete_tag=False),
        ]

    @pytest.mark.parametrize(
        "result",
        [BuildResult.UNSTABLE, BuildResult.FAILURE, BuildResult.NOT_BUILT, BuildResult.ABORTED],
    )
    def test_unsuccessful_results_never_push(self, result: BuildResult) -> None:
        coordinator, vcs = _coordinator(_config(release_branch=RELEASE_BRANCH, tag=TAG), result)

        outcome = _run_all(coordinator, release_modified=True, dev_modified=True)

        assert outcome == Ok("rolled_back")
        assert not any(call[0] == "push" for call in vcs.calls)
        assert vcs.calls[-1] == ("revert", CHECKOUT_BRANCH, CHECKOUT_REVISION)

    def test_rollback_is_reported(self) -> None:
        console = MockConsole()
        coordinator, _ = _coordinator(_config(), BuildResult.FAILURE, console=console)

        _run_all(coordinator, release_modified=True, dev_modified=True)

        assert console.has_warning()
        assert console.find("rolled back build-branch to cafecafe")

    def test_failed_compensation_stops_rollback(self) -> None:
        vcs = RecordingVcs(
            fail_on={"delete_local_branch": VcsError("delete-branch", "branch is locked")}
        )
        coordinator, _ = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.FAILURE, vcs=vcs
        )

        result = _run_all(coordinator, release_modified=True, dev_modified=True)

        assert isinstance(result, Err)
        assert result.error.kind == "rollback"
        assert result.error.hint is not None
        assert f"delete tag {TAG}" in result.error.hint
        assert "reset build-branch" in result.error.hint
        assert vcs.calls[-1] == ("delete_local_branch", RELEASE_BRANCH)
        assert result.error.exit_code.needs_manual_cleanup


# =============================================================================
# Forward step failures
# =============================================================================


class TestForwardFailure:
    def test_failed_commit_aborts_and_rolls_back_despite_success(self) -> None:
        vcs = RecordingVcs(fail_on={"commit": VcsError("commit", "git commit failed")})
        coordinator, _ = _coordinator(
            _config(release_branch=RELEASE_BRANCH, tag=TAG), BuildResult.SUCCESS, vcs=vcs
        )
        assert isinstance(coordinator.prepare(), Ok)
        assert isinstance(coordinator.before_release_version_change(), Ok)

        failed = coordinator.after_release_version_change(True)
        refused = coordinator.after_successful_release_version_build()
        completed = coordinator.build_completed()

        assert isinstance(failed, Err)
        assert failed.error.kind == "vcs_operation"
        assert failed.error.step is ReleaseStep.AFTER_RELEASE_VERSION_CHANGE
        assert isinstance(refused, Err)
        assert refused.error.kind == "invalid_sequence"
        assert completed == Ok("rolled_back")
        # The tag was never created, so it is not deleted.
        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("commit", TAG_COMMENT),
            *_rollback(delete_branch=True, delete_tag=False),
        ]

    def test_failed_release_branch_checkout_is_not_deleted(self) -> None:
        vcs = RecordingVcs(fail_on={"checkout": VcsError("checkout", "branch exists")})
        coordinator, _ = _coordinator(
            _config(release_branch=RELEASE_BRANCH), BuildResult.FAILURE, vcs=vcs
        )
        assert isinstance(coordinator.prepare(), Ok)

        assert isinstance(coordinator.before_release_version_change(), Err)
        completed = coordinator.build_completed()

        # The rollback checkout fails too, so nothing after it runs.
        assert isinstance(completed, Err)
        assert completed.error.kind == "rollback"
        assert not coordinator.snapshot.release_branch_created
        assert vcs.after_prepare == [
            ("checkout", RELEASE_BRANCH, True),
            ("checkout", CHECKOUT_BRANCH, False),
        ]

    def test_run_cut_short_is_rolled_back_even_on_success(self) -> None:
        console = MockConsole()
        coordinator, vcs = _coordinator(_config(tag=TAG), BuildResult.SUCCESS, console=console)
        assert isinstance(coordinator.prepare(), Ok)
        assert isinstance(coordinator.before_release_version_change(), Ok)
        assert isinstance(coordinator.after_release_version_change(True), Ok)

        completed = coordinator.build_completed()

        assert completed == Ok("rolled_back")
        assert not any(call[0] == "push" for call in vcs.calls)
        assert console.find("did not finish")


# =============================================================================
# Call sequencing
# =============================================================================


class TestSequencing:
    def test_step_before_prepare_is_rejected(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)

        result = coordinator.before_release_version_change()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_sequence"
        assert vcs.calls == []

    def test_build_completed_before_prepare_is_rejected(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.FAILURE)

        result = coordinator.build_completed()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_sequence"
        assert vcs.calls == []

    def test_skipped_step_is_rejected(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)
        assert isinstance(coordinator.prepare(), Ok)

        result = coordinator.after_release_version_change(True)

        assert isinstance(result, Err)
        assert "expected before-release-version-change" in result.error.message
        assert len(vcs.calls) == 3

    def test_repeated_prepare_is_rejected(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)
        assert isinstance(coordinator.prepare(), Ok)

        result = coordinator.prepare()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_sequence"
        assert len(vcs.calls) == 3

    def test_second_build_completed_is_rejected(self) -> None:
        coordinator, vcs = _coordinator(_config(), BuildResult.SUCCESS)
        _run_all(coordinator, release_modified=False, dev_modified=False)
        calls = list(vcs.calls)

        result = coordinator.build_completed()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_sequence"
        assert "already completed" in result.error.message
        assert vcs.calls == calls

    def test_hook_issues_no_vcs_operation(self) -> None:
        coordinator, vcs = _coordinator(_config(release_branch=RELEASE_BRANCH), BuildResult.SUCCESS)
        assert isinstance(coordinator.prepare(), Ok)
        assert isinstance(coordinator.before_release_version_change(), Ok)
        assert isinstance(coordinator.after_release_version_change(False), Ok)
        calls = list(vcs.calls)

        assert isinstance(coordinator.after_successful_release_version_build(), Ok)

        assert vcs.calls == calls
