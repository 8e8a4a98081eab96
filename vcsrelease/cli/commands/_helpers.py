from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from vcsrelease.core.errors import ErrorCode
from vcsrelease.core.result import Err
from vcsrelease.core.structured import StrDict
from vcsrelease.release.config import load_release_table, release_config_from_dict
from vcsrelease.release.model import ReleaseConfig


def exit_with(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def resolve_config(
    *,
    config_path: Path | None,
    release_branch: str | None = None,
    tag: str | None = None,
    remote: str | None = None,
    credentials: str | None = None,
) -> ReleaseConfig:
    """Load the config file (if any) and apply command line overrides.

    Passing --tag also enables tag creation.
    """
    table: StrDict = {}
    if config_path is not None:
        loaded = load_release_table(config_path)
        if isinstance(loaded, Err):
            exit_with(loaded.error.pretty(), code=ErrorCode.CONFIG_ERROR)
        table = dict(loaded.value)

    if release_branch is not None:
        table["branch"] = release_branch
    if tag is not None:
        table["tag"] = tag
        table["create_tag"] = True
    if remote is not None:
        table["remote"] = remote
    if credentials is not None:
        table["credentials"] = credentials

    result = release_config_from_dict(table)
    if isinstance(result, Err):
        exit_with(result.error.pretty(), code=ErrorCode.CONFIG_ERROR)
    return result.value
