"""Pull request merge module.

This module handles:
- Validating the PR ID, target branch and GitHub's view of the PR
- Rebasing the PR head onto the refreshed target branch
- Fast-forward merging, publishing and closing the PR
"""

from openwrt_maint.merge.errors import MergeError
from openwrt_maint.merge.validation import check_pull_request, parse_pr_id
from openwrt_maint.merge.workflow import (
    MergeOutcome,
    MergeRequest,
    PullRequestMerger,
    merge_pull_request,
)

__all__ = [
    "MergeError",
    "MergeOutcome",
    "MergeRequest",
    "PullRequestMerger",
    "check_pull_request",
    "merge_pull_request",
    "parse_pr_id",
]
