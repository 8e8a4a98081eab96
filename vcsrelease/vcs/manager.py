"""VCS manager contract.

The release coordinator is written against VcsManager only. A backend
implements it for one version control system (see vcs.git for git). Every
call is synchronous and either fully succeeds or returns Err(VcsError);
there are no partial or batched operations and no retries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from vcsrelease.core.result import Result

__all__ = ["RepositoryHandle", "VcsError", "VcsManager"]


@dataclass(frozen=True, slots=True)
class RepositoryHandle:
    """Resolved remote to publish to.

    Attributes:
        name: Remote name as given to the VCS (e.g. "origin", or a URL)
        url: Fetch/push URL the name resolved to
    """

    name: str
    url: str


@dataclass(frozen=True, slots=True)
class VcsError:
    """Failure of a single VCS operation.

    Attributes:
        operation: Short name of the failed operation (e.g. "checkout")
        message: Human readable summary
        hint: Backend output or a suggested fix, if any
    """

    operation: str
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class VcsManager(Protocol):
    """Operations the release coordinator may issue against a working copy."""

    def resolve_remote(self, name: str) -> Result[RepositoryHandle, VcsError]: ...

    def set_credentials(self, ref: str | None) -> Result[None, VcsError]:
        """Use the credentials behind `ref` for network operations.

        The reference is opaque; the backend resolves it through its
        credential store. None means "use whatever the transport has".
        """
        ...

    def resolve_revision(self, ref: str) -> Result[str, VcsError]:
        """Resolve a branch or ref to an immutable revision id."""
        ...

    def checkout(self, branch: str, *, create: bool) -> Result[None, VcsError]: ...

    def commit_working_copy(self, message: str) -> Result[None, VcsError]: ...

    def create_tag(self, name: str, message: str) -> Result[None, VcsError]: ...

    def push(self, repo: RepositoryHandle, branch: str) -> Result[None, VcsError]: ...

    def delete_local_branch(self, name: str) -> Result[None, VcsError]: ...

    def delete_local_tag(self, name: str) -> Result[None, VcsError]: ...

    def revert_working_copy_to(self, branch: str, revision: str) -> Result[None, VcsError]:
        """Force `branch` (checked out) and the working tree back to `revision`."""
        ...
