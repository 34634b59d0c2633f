"""Git gateway.

This module handles:
- Running git subprocesses with uniform error reporting
- The Git interface used by the merge workflow
- Real, dry-run (echoing) and in-memory fake implementations
"""

from openwrt_maint.git.abc import Git
from openwrt_maint.git.commands import GitCommandError, git_available, run_git
from openwrt_maint.git.dry_run import DryRunGit
from openwrt_maint.git.fake import FakeGit
from openwrt_maint.git.real import RealGit

__all__ = [
    "DryRunGit",
    "FakeGit",
    "Git",
    "GitCommandError",
    "RealGit",
    "git_available",
    "run_git",
]
