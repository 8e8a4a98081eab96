"""Release configuration source.

Reads the `[release]` table of a TOML file into a ReleaseConfig and checks
that its flags are mutually consistent. The coordinator trusts what it gets
from here.

Example:
    [release]
    branch = "release-v2.1"
    create_tag = true
    tag = "v2.1"
    tag_comment = "[release] Release version 2.1"
    next_dev_commit_comment = "[release] Next development version"
    remote = "origin"
    credentials = "git-release"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from vcsrelease.core.result import Err, Ok, Result
from vcsrelease.core.structured import StrDict, as_str_dict, get_str, get_table, has_wrong_type
from vcsrelease.release.model import (
    DEFAULT_NEXT_DEV_COMMIT_COMMENT,
    DEFAULT_REMOTE,
    DEFAULT_TAG_COMMENT,
    ReleaseConfig,
)

__all__ = [
    "ConfigError",
    "load_release_config",
    "load_release_table",
    "release_config_from_dict",
    "validate_release_config",
]

_STRING_KEYS = ("branch", "tag", "tag_comment", "next_dev_commit_comment", "remote", "credentials")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the release config cannot be loaded or is inconsistent."""

    message: str
    path: Path | None = None

    def pretty(self) -> str:
        if self.path is not None:
            return f"{self.path}: {self.message}"
        return self.message


def validate_release_config(config: ReleaseConfig) -> Result[ReleaseConfig, ConfigError]:
    """Check the invariants a ReleaseConfig must hold before a run starts."""
    if config.create_tag and config.tag_name is None:
        return Err(ConfigError("create_tag is enabled but no tag name is set"))
    if not config.create_tag and config.tag_name is not None:
        return Err(ConfigError(f"tag '{config.tag_name}' is set but create_tag is disabled"))
    if not config.target_remote.strip():
        return Err(ConfigError("remote must not be empty"))
    if config.release_branch is not None and config.release_branch == config.tag_name:
        return Err(ConfigError(f"release branch and tag share the name '{config.tag_name}'"))
    return Ok(config)


def release_config_from_dict(data: Mapping[str, object]) -> Result[ReleaseConfig, ConfigError]:
    """Build a ReleaseConfig from the contents of a `[release]` table."""
    for key in _STRING_KEYS:
        if has_wrong_type(data, key, str):
            return Err(ConfigError(f"'{key}' must be a string"))
    if has_wrong_type(data, "create_tag", bool):
        return Err(ConfigError("'create_tag' must be true or false"))

    config = ReleaseConfig(
        release_branch=get_str(data, "branch"),
        create_tag=data.get("create_tag") is True,
        tag_name=get_str(data, "tag"),
        tag_comment=get_str(data, "tag_comment") or DEFAULT_TAG_COMMENT,
        next_dev_commit_comment=get_str(data, "next_dev_commit_comment")
        or DEFAULT_NEXT_DEV_COMMIT_COMMENT,
        target_remote=get_str(data, "remote") or DEFAULT_REMOTE,
        credentials_ref=get_str(data, "credentials"),
    )
    return validate_release_config(config)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_release_table(path: Path) -> Result[StrDict, ConfigError]:
    """Read the raw [release] table, for callers that layer overrides on top."""
    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed

    table = get_table(parsed.value, "release")
    if table is None:
        return Err(ConfigError("missing [release] table", path=path))
    return Ok(table)


def load_release_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and validate the release configuration from a TOML file.

    Args:
        path: Path to a TOML file with a [release] table

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    table = load_release_table(path)
    if isinstance(table, Err):
        return table

    result = release_config_from_dict(table.value)
    if isinstance(result, Err):
        return Err(ConfigError(result.error.message, path=path))
    return result
