"""Subprocess execution with Result-based error handling.

This is the only module allowed to call into subprocess. The git backend and
the CLI's user commands both go through it, so a timeout, a missing
executable and a non-zero exit all arrive as the same ProcessError.

Usage:
    match run(["git", "rev-parse", "HEAD"], cwd=repo_root, timeout=30.0):
        case Ok(stdout):
            sha = stdout.strip()
        case Err(error):
            print(f"{error}: {error.detail}")
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vcsrelease.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_silent"]

# Exit code reported when the process never ran to completion.
NOT_COMPLETED = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not be run, or exited non-zero.

    Attributes:
        command: argv as executed
        returncode: exit status, NOT_COMPLETED on timeout or spawn failure
        stdout: captured output, empty when output was streamed
        stderr: captured errors, or why the process did not run
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """Best available explanation, for hints shown to the user."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def _environment(extra: Mapping[str, str] | None) -> dict[str, str] | None:
    # None lets the child inherit our environment unchanged.
    if not extra:
        return None
    return {**os.environ, **extra}


def _spawn(
    cmd: list[str], cwd: Path, **kwargs: Any
) -> Result[subprocess.CompletedProcess[str], ProcessError]:
    try:
        return Ok(subprocess.run(cmd, cwd=str(cwd), check=False, **kwargs))
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        reason = f"Command timed out after {kwargs.get('timeout')}s"
        return Err(ProcessError(tuple(cmd), NOT_COMPLETED, partial, reason))
    except OSError as e:
        return Err(ProcessError(tuple(cmd), NOT_COMPLETED, "", str(e)))


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run a command and capture its output.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Extra variables layered over the current environment.
        timeout: Seconds before the command is killed (None: no limit).

    Returns:
        Ok(stdout) on exit code 0, Err(ProcessError) otherwise.
    """
    spawned = _spawn(
        cmd,
        cwd,
        env=_environment(env),
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    if isinstance(spawned, Err):
        return spawned

    proc = spawned.value
    if proc.returncode != 0:
        return Err(ProcessError(tuple(cmd), proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Run a command with its output going straight to the terminal.

    For user commands (version bumps, builds) whose output belongs in the
    build log. Nothing is captured, so a failure carries only the exit code.
    """
    spawned = _spawn(cmd, cwd, env=_environment(env))
    if isinstance(spawned, Err):
        return spawned

    returncode = spawned.value.returncode
    if returncode != 0:
        return Err(ProcessError(tuple(cmd), returncode, "", ""))
    return Ok(None)
