from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from vcsrelease.vcs.manager import RepositoryHandle

DEFAULT_TAG_COMMENT = "[release] Release version"
DEFAULT_NEXT_DEV_COMMIT_COMMENT = "[release] Next development version"
DEFAULT_REMOTE = "origin"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """What a single release run should do.

    Built once by the configuration source and never mutated. Consistency
    between `create_tag` and `tag_name` is checked by the source
    (see release.config), not by the coordinator.
    """

    release_branch: str | None = None  # None: release in place
    create_tag: bool = False
    tag_name: str | None = None
    tag_comment: str = DEFAULT_TAG_COMMENT
    next_dev_commit_comment: str = DEFAULT_NEXT_DEV_COMMIT_COMMENT
    target_remote: str = DEFAULT_REMOTE
    credentials_ref: str | None = None

    @property
    def create_release_branch(self) -> bool:
        return self.release_branch is not None


class ReleaseStep(IntEnum):
    """Lifecycle calls of a release run, in the only order they may happen."""

    PREPARE = 1
    BEFORE_RELEASE_VERSION_CHANGE = 2
    AFTER_RELEASE_VERSION_CHANGE = 3
    AFTER_SUCCESSFUL_RELEASE_VERSION_BUILD = 4
    BEFORE_DEVELOPMENT_VERSION_CHANGE = 5
    AFTER_DEVELOPMENT_VERSION_CHANGE = 6
    BUILD_COMPLETED = 7

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass
class RunState:
    """Mutable state of one run. Owned by the coordinator, never shared."""

    original_branch: str = ""
    original_ref: str = ""  # as the build reported it, e.g. "origin/main"
    original_revision: str = ""
    repository: RepositoryHandle | None = None
    release_branch_created: bool = False
    tag_created: bool = False


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    """Read-only view of a run, for reporting."""

    last_step: ReleaseStep | None
    failed: bool
    original_branch: str
    original_revision: str
    release_branch_created: bool
    tag_created: bool


def normalize_branch(ref: str) -> str:
    """Strip the remote-tracking prefix from a branch reference.

    "origin/build-branch"           -> "build-branch"
    "refs/remotes/origin/feature/x" -> "feature/x"
    "main"                          -> "main"
    """
    name = ref.strip()
    for prefix in ("refs/remotes/", "remotes/"):
        if name.startswith(prefix):
            name = name[len(prefix) :]
            break
    if name.startswith("refs/heads/"):
        return name[len("refs/heads/") :]
    if "/" in name:
        return name.split("/", 1)[1]
    return name
