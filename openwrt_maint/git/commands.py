"""Subprocess helpers for invoking git.

All git invocations in openwrt_maint go through run_git() so failures are
surfaced uniformly as GitCommandError.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from openwrt_maint.types import CommandResult

logger = logging.getLogger(__name__)

GIT_EXECUTABLE = "git"


class GitCommandError(Exception):
    """Raised when a git command fails."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int | None,
        stderr: str = "",
        code: str = "git_error",
    ) -> None:
        command = shlex.join(["git", *args])
        detail = stderr.strip()
        message = f"'{command}' failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.code = code


def git_available() -> bool:
    """Return True if a git executable is on PATH."""
    return shutil.which(GIT_EXECUTABLE) is not None


def run_git(
    args: Sequence[str],
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> CommandResult:
    """Run a git command and capture its output.

    Args:
        args: Arguments following ``git``.
        cwd: Working directory (repository path).
        env: Extra environment variables layered over os.environ.
        check: Raise GitCommandError on a non-zero exit code.

    Returns:
        CommandResult with captured stdout/stderr.

    Raises:
        GitCommandError: If git cannot be executed, or exits non-zero and
            check is True.
    """
    cmd = [GIT_EXECUTABLE, *args]
    logger.debug("Running %s (cwd=%s)", shlex.join(cmd), cwd)

    full_env: dict[str, str] | None = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)

    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            env=full_env,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise GitCommandError(args, None, str(e), code="execution_error") from e

    result = CommandResult(
        args=list(args),
        returncode=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
    )
    if check and not result.ok:
        raise GitCommandError(args, proc.returncode, proc.stderr)
    return result


__all__ = ["GIT_EXECUTABLE", "GitCommandError", "git_available", "run_git"]
