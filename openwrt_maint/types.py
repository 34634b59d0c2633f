"""Shared type definitions for openwrt_maint.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum


class MergeStage(str, Enum):
    """Stage of the pull request merge workflow, in execution order."""

    VALIDATE = "validate"
    SYNC_TARGET = "sync_target"
    FETCH_PR_BRANCH = "fetch_pr_branch"
    REBASE_PR_BRANCH = "rebase_pr_branch"
    FORCE_PUSH_FORK = "force_push_fork"
    DIRTY_CHECK = "dirty_check"
    FF_MERGE = "ff_merge"
    CONFIRM = "confirm"
    PUSH_TARGET = "push_target"
    NOTIFY_GITHUB = "notify_github"
    DELETE_TEMP_BRANCH = "delete_temp_branch"
    DONE = "done"


class ExitCode(IntEnum):
    """Process exit codes of the merge-pr command."""

    OK = 0
    USAGE = 1
    BRANCH_MISSING = 2
    PR_FETCH_FAILED = 3
    MAINTAINER_CANNOT_MODIFY = 4
    NOT_MERGEABLE = 5
    NOTIFY_FAILED = 6
    SYNC_TARGET_FAILED = 7
    PR_BRANCH_CHECKOUT_FAILED = 8
    PR_REBASE_FAILED = 9
    FORCE_PUSH_FAILED = 10
    MERGE_FAILED = 11
    PUSH_FAILED = 12


class FeedKind(str, Enum):
    """Source method of a feeds.conf entry."""

    GIT = "src-git"
    GIT_FULL = "src-git-full"
    SVN = "src-svn"


@dataclass
class CommandResult:
    """Captured result of an external command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


__all__ = [
    "CommandResult",
    "ExitCode",
    "FeedKind",
    "MergeStage",
]
