"""Git backend for the VcsManager contract.

GitManager drives the `git` executable inside a single working copy. All
methods return Result types; a non-zero git exit becomes Err(VcsError) with
git's stderr as the hint.

Usage:
    git = GitManager(Path("/path/to/checkout"), console=RichConsole())

    match git.resolve_revision("origin/main"):
        case Ok(sha):
            print(f"Rollback anchor: {sha}")
        case Err(e):
            print(f"Cannot resolve: {e.pretty()}")
"""

from __future__ import annotations

import base64
import re
from pathlib import Path

from vcsrelease.core.result import Err, Ok, Result
from vcsrelease.output.console import ConsoleProtocol, Style
from vcsrelease.platform.process import ProcessError
from vcsrelease.platform.process import run as run_process
from vcsrelease.vcs.credentials import CredentialStore, Credentials, EnvCredentialStore
from vcsrelease.vcs.manager import RepositoryHandle, VcsError

# Local git operations (status, rev-parse, checkout, commit, tag, reset)
GIT_TIMEOUT_SECONDS = 30.0

# Network-bound git operations
GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})
_SHA_RE = re.compile(r"^[0-9a-f]{40}$")
_SCP_LIKE_RE = re.compile(r"^[\w.-]+@[\w.-]+:")

__all__ = [
    "GIT_NETWORK_TIMEOUT_SECONDS",
    "GIT_TIMEOUT_SECONDS",
    "GitManager",
    "is_remote_url",
]


def is_remote_url(name: str) -> bool:
    """True if `name` is already a URL rather than a configured remote name."""
    return "://" in name or bool(_SCP_LIKE_RE.match(name))


class GitManager:
    """VcsManager implementation backed by the git CLI.

    Read-only commands always run. With dry_run=True, commands that would
    change the working copy or the remote are only echoed.

    Attributes:
        path: Root of the working copy
    """

    def __init__(
        self,
        path: Path,
        *,
        console: ConsoleProtocol,
        credential_store: CredentialStore | None = None,
        dry_run: bool = False,
    ) -> None:
        self.path = path
        self._console = console
        self._credential_store = credential_store or EnvCredentialStore()
        self._credentials: Credentials | None = None
        self._dry_run = dry_run

    # -- VcsManager -----------------------------------------------------

    def resolve_remote(self, name: str) -> Result[RepositoryHandle, VcsError]:
        if is_remote_url(name):
            return Ok(RepositoryHandle(name=name, url=name))

        result = self._run(["remote", "get-url", name])
        if isinstance(result, Err):
            return Err(
                VcsError(
                    operation="resolve-remote",
                    message=f"unknown remote: {name}",
                    hint=result.error.detail,
                )
            )

        url = result.value.strip()
        if not url:
            return Err(VcsError(operation="resolve-remote", message=f"remote has no url: {name}"))
        return Ok(RepositoryHandle(name=name, url=url))

    def set_credentials(self, ref: str | None) -> Result[None, VcsError]:
        if ref is None:
            self._credentials = None
            return Ok(None)

        resolved = self._credential_store.resolve(ref)
        if isinstance(resolved, Err):
            return resolved
        self._credentials = resolved.value
        return Ok(None)

    def resolve_revision(self, ref: str) -> Result[str, VcsError]:
        result = self._run(["rev-parse", "--verify", f"{ref}^{{commit}}"])
        if isinstance(result, Err):
            return Err(
                VcsError(
                    operation="rev-parse",
                    message=f"cannot resolve revision: {ref}",
                    hint=result.error.detail,
                )
            )

        sha = result.value.strip()
        if not _SHA_RE.match(sha):
            return Err(VcsError(operation="rev-parse", message="invalid revision id", hint=sha))
        return Ok(sha)

    def checkout(self, branch: str, *, create: bool) -> Result[None, VcsError]:
        args = ["checkout", "-b", branch] if create else ["checkout", branch]
        return self._mutate(args, operation="checkout", message=f"checkout failed: {branch}")

    def commit_working_copy(self, message: str) -> Result[None, VcsError]:
        result = self._mutate(
            ["commit", "--all", "-m", message],
            operation="commit",
            message="git commit failed",
        )
        if isinstance(result, Err) and result.error.hint is None:
            return Err(
                VcsError(
                    operation="commit",
                    message="git commit failed",
                    hint="Configure git user.name/user.email, then retry.",
                )
            )
        return result

    def create_tag(self, name: str, message: str) -> Result[None, VcsError]:
        return self._mutate(
            ["tag", "-a", name, "-m", message],
            operation="tag",
            message=f"failed to create tag: {name}",
        )

    def push(self, repo: RepositoryHandle, branch: str) -> Result[None, VcsError]:
        refspec = f"refs/heads/{branch}:refs/heads/{branch}"
        return self._mutate(
            ["push", "--follow-tags", repo.name, refspec],
            operation="push",
            message=f"git push failed: {branch} -> {repo.url}",
        )

    def delete_local_branch(self, name: str) -> Result[None, VcsError]:
        return self._mutate(
            ["branch", "-D", name],
            operation="delete-branch",
            message=f"failed to delete branch: {name}",
        )

    def delete_local_tag(self, name: str) -> Result[None, VcsError]:
        return self._mutate(
            ["tag", "-d", name],
            operation="delete-tag",
            message=f"failed to delete tag: {name}",
        )

    def revert_working_copy_to(self, branch: str, revision: str) -> Result[None, VcsError]:
        return self._mutate(
            ["reset", "--hard", revision],
            operation="revert",
            message=f"failed to reset {branch} to {revision[:8]}",
        )

    # -- Working copy queries ---------------------------------------------

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def has_changes(self) -> Result[bool, VcsError]:
        """True if tracked files differ from HEAD.

        Untracked files are ignored: `commit --all` would not pick them up.
        """
        result = self._run(["status", "--porcelain", "--untracked-files=no"])
        if isinstance(result, Err):
            return Err(
                VcsError(
                    operation="status",
                    message="failed to check git status",
                    hint=result.error.detail,
                )
            )
        return Ok(result.value.strip() != "")

    # -- Internals --------------------------------------------------------

    def _mutate(self, args: list[str], *, operation: str, message: str) -> Result[None, VcsError]:
        self._console.print(f"git {' '.join(args)}", Style.DIM)
        if self._dry_run:
            return Ok(None)

        result = self._run(args)
        if isinstance(result, Err):
            e = result.error
            return Err(
                VcsError(
                    operation=operation,
                    message=message,
                    hint=e.stderr.strip() or e.stdout.strip() or None,
                )
            )
        return Ok(None)

    def _auth_env(self) -> dict[str, str] | None:
        """Pass credentials as an HTTP header through git's config env vars.

        Keeps the secret out of the argument list (and out of echoed commands).
        """
        if self._credentials is None:
            return None

        raw = f"{self._credentials.username}:{self._credentials.password}"
        token = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {token}",
            "GIT_TERMINAL_PROMPT": "0",
        }

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this working copy."""
        command = args[0] if args else ""
        network = command in _NETWORK_COMMANDS
        timeout = GIT_NETWORK_TIMEOUT_SECONDS if network else GIT_TIMEOUT_SECONDS
        env = self._auth_env() if network else None
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, env=env, timeout=timeout)
