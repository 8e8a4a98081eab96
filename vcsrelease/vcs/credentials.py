"""Credential store collaborator.

The coordinator only ever sees an opaque credentials reference. The git
backend hands that reference to a CredentialStore to obtain something the
transport can use.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from vcsrelease.core.result import Err, Ok, Result
from vcsrelease.vcs.manager import VcsError

__all__ = ["CredentialStore", "Credentials", "EnvCredentialStore", "env_prefix"]


@dataclass(frozen=True, slots=True)
class Credentials:
    username: str
    password: str = field(repr=False)


class CredentialStore(Protocol):
    def resolve(self, ref: str) -> Result[Credentials, VcsError]: ...


def env_prefix(ref: str) -> str:
    """Map a credentials reference to its environment variable prefix.

    "git-release.bot" -> "GIT_RELEASE_BOT"
    """
    return re.sub(r"[^A-Za-z0-9]", "_", ref.strip()).upper()


class EnvCredentialStore:
    """Resolve references from <PREFIX>_USERNAME / <PREFIX>_PASSWORD variables."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def resolve(self, ref: str) -> Result[Credentials, VcsError]:
        prefix = env_prefix(ref)
        if not prefix:
            return Err(VcsError(operation="credentials", message="empty credentials reference"))

        username = self._environ.get(f"{prefix}_USERNAME", "").strip()
        password = self._environ.get(f"{prefix}_PASSWORD", "")
        if not username or not password:
            return Err(
                VcsError(
                    operation="credentials",
                    message=f"credentials not found: {ref}",
                    hint=f"Set {prefix}_USERNAME and {prefix}_PASSWORD.",
                )
            )

        return Ok(Credentials(username=username, password=password))
