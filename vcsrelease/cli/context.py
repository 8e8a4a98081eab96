from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from vcsrelease.core.errors import ErrorCode
from vcsrelease.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    console: ConsoleProtocol


def build_context(repo: Path | None) -> CLIContext:
    try:
        root = (repo or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --repo: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not (root / ".git").exists():
        typer.echo(f"error: not a git working copy: {root}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(repo_root=root, console=RichConsole())
