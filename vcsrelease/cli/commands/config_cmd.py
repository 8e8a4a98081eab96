from __future__ import annotations

from pathlib import Path

import typer

from vcsrelease.cli.commands._helpers import resolve_config
from vcsrelease.output.console import RichConsole, Style


def show_config(
    config: Path | None = typer.Option(None, "--config", "-c", help="TOML file with a [release] table"),
) -> None:
    """Validate a release config and print the resolved settings."""
    release_config = resolve_config(config_path=config)
    console = RichConsole()

    console.header("Release config")
    rows = (
        ("release branch", release_config.release_branch or "(none, release in place)"),
        ("tag", release_config.tag_name if release_config.create_tag else "(none)"),
        ("tag comment", release_config.tag_comment),
        ("next dev comment", release_config.next_dev_commit_comment),
        ("remote", release_config.target_remote),
        ("credentials", release_config.credentials_ref or "(none)"),
    )
    for label, value in rows:
        console.print(f"{label}: {value}")
    console.print(f"source: {config or 'defaults'}", Style.DIM)
