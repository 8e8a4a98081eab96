"""Run command - perform a complete release in a git working copy."""

from __future__ import annotations

import os
from pathlib import Path

import typer

from vcsrelease.cli.commands._helpers import resolve_config
from vcsrelease.cli.context import build_context
from vcsrelease.output.console import Style
from vcsrelease.release.build import BRANCH_ENV_VAR, ProcessBuildOutcome
from vcsrelease.release.coordinator import ReleaseCoordinator
from vcsrelease.release.runner import ReleaseCommands, parse_command, run_release
from vcsrelease.vcs.git import GitManager


def run(
    config: Path | None = typer.Option(None, "--config", "-c", help="TOML file with a [release] table"),
    repo: Path | None = typer.Option(None, "--repo", help="Working copy (default: current directory)"),
    release_branch: str | None = typer.Option(None, "--release-branch", help="Create this release branch"),
    tag: str | None = typer.Option(None, "--tag", help="Create this tag on the release commit"),
    remote: str | None = typer.Option(None, "--remote", help="Remote to publish to"),
    credentials: str | None = typer.Option(None, "--credentials", help="Credentials reference"),
    release_cmd: str | None = typer.Option(
        None, "--release-cmd", help="Command that sets the release version"
    ),
    build_cmd: str | None = typer.Option(None, "--build-cmd", help="Command that builds the release"),
    dev_cmd: str | None = typer.Option(
        None, "--dev-cmd", help="Command that sets the next development version"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print git commands without changing anything"),
) -> None:
    """Release: commit, tag and push, or roll back if anything fails."""
    ctx = build_context(repo)
    console = ctx.console

    release_config = resolve_config(
        config_path=config,
        release_branch=release_branch,
        tag=tag,
        remote=remote,
        credentials=credentials,
    )

    git = GitManager(ctx.repo_root, console=console, dry_run=dry_run)

    env = dict(os.environ)
    if not env.get(BRANCH_ENV_VAR, "").strip():
        current = git.current_branch()
        if current is not None:
            env[BRANCH_ENV_VAR] = f"refs/heads/{current}"
    build = ProcessBuildOutcome(env)

    coordinator = ReleaseCoordinator(git, release_config, build, console)

    console.header("Release")
    console.print(f"working copy: {ctx.repo_root}", Style.DIM)
    if dry_run:
        console.print("dry-run: git changes are printed, not applied", Style.DIM)

    report = run_release(
        coordinator=coordinator,
        build=build,
        has_changes=git.has_changes,
        commands=ReleaseCommands(
            release_version=parse_command(release_cmd),
            build=parse_command(build_cmd),
            development_version=parse_command(dev_cmd),
        ),
        repo_root=ctx.repo_root,
        console=console,
    )

    if report.error is not None:
        console.error(report.error.pretty())
        if report.exit_code.needs_manual_cleanup:
            console.print(f"inspect {ctx.repo_root} before the next release", Style.DIM)
    elif report.outcome == "rolled_back":
        console.warning(f"build {report.build_result}: release rolled back")

    raise typer.Exit(code=int(report.exit_code))
