"""Input and precondition checks for the merge workflow.

Everything here runs before the first git mutation.
"""

from __future__ import annotations

import logging
import re

from openwrt_maint.github.models import PullRequestInfo
from openwrt_maint.merge.errors import MergeError
from openwrt_maint.types import ExitCode, MergeStage

logger = logging.getLogger(__name__)

PR_ID_PATTERN = re.compile(r"^[0-9]+$")


def parse_pr_id(raw: str | None) -> int:
    """Parse a pull request number given on the command line.

    Args:
        raw: Raw argument value.

    Returns:
        The pull request number.

    Raises:
        MergeError: With ExitCode.USAGE if the value is empty, not purely
            numeric, or zero.
    """
    value = (raw or "").strip()
    if not PR_ID_PATTERN.match(value) or int(value) == 0:
        raise MergeError(
            f"Invalid pull request ID: {raw!r} (expected a positive number)",
            MergeStage.VALIDATE,
            ExitCode.USAGE,
        )
    return int(value)


def check_pull_request(pr: PullRequestInfo) -> list[str]:
    """Check that GitHub allows the pull request to be rebased and merged.

    Args:
        pr: Fetched pull request metadata.

    Returns:
        Warnings that do not block the merge.

    Raises:
        MergeError: If maintainers cannot force push to the head branch, or
            GitHub reports the pull request as not mergeable.
    """
    if not pr.maintainer_can_modify:
        raise MergeError(
            f"PR #{pr.id} can't be force pushed by maintainers. Can't merge this PR!",
            MergeStage.VALIDATE,
            ExitCode.MAINTAINER_CANNOT_MODIFY,
        )

    if pr.mergeable is False:
        raise MergeError(
            f"PR #{pr.id} is not mergeable for GitHub. Check the PR!",
            MergeStage.VALIDATE,
            ExitCode.NOT_MERGEABLE,
        )

    warnings: list[str] = []
    if pr.mergeable is None:
        logger.debug("PR #%d mergeability is still being computed", pr.id)
        warnings.append(
            f"GitHub has not computed mergeability of PR #{pr.id} yet, continuing"
        )
    return warnings


__all__ = ["PR_ID_PATTERN", "check_pull_request", "parse_pr_id"]
