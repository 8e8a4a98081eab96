"""Version control layer.

- manager: the VcsManager contract the release coordinator drives
- git: the git backend
- credentials: credential references and their resolution
"""

from vcsrelease.vcs.credentials import CredentialStore, Credentials, EnvCredentialStore
from vcsrelease.vcs.git import GitManager
from vcsrelease.vcs.manager import RepositoryHandle, VcsError, VcsManager

__all__ = [
    # manager
    "RepositoryHandle",
    "VcsError",
    "VcsManager",
    # git
    "GitManager",
    # credentials
    "CredentialStore",
    "Credentials",
    "EnvCredentialStore",
]
