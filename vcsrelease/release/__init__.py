"""Release run orchestration.

- model: release configuration and run state
- config: loading the configuration from TOML
- build: access to the enclosing build's environment and result
- coordinator: the lifecycle that checks out, commits, tags, publishes or rolls back
"""

from __future__ import annotations

from vcsrelease.release.build import (
    BRANCH_ENV_VAR,
    BuildOutcome,
    BuildResult,
    ProcessBuildOutcome,
    StaticBuildOutcome,
)
from vcsrelease.release.config import ConfigError, load_release_config, release_config_from_dict
from vcsrelease.release.coordinator import ReleaseCoordinator, ReleaseOutcome
from vcsrelease.release.errors import CoordinatorError
from vcsrelease.release.model import ReleaseConfig, ReleaseStep, RunSnapshot, normalize_branch

__all__ = [
    "BRANCH_ENV_VAR",
    "BuildOutcome",
    "BuildResult",
    "ConfigError",
    "CoordinatorError",
    "ProcessBuildOutcome",
    "ReleaseConfig",
    "ReleaseCoordinator",
    "ReleaseOutcome",
    "ReleaseStep",
    "RunSnapshot",
    "StaticBuildOutcome",
    "load_release_config",
    "normalize_branch",
    "release_config_from_dict",
]
