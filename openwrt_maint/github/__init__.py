"""GitHub forge API module.

This module handles:
- Pull request metadata (PullRequestInfo)
- The GitHubClient interface with an httpx implementation and a fake
"""

from openwrt_maint.github.client import (
    GITHUB_API_URL,
    GitHubAPIError,
    GitHubClient,
    HttpGitHubClient,
)
from openwrt_maint.github.fake import FakeGitHubClient
from openwrt_maint.github.models import PullRequestInfo

__all__ = [
    "GITHUB_API_URL",
    "FakeGitHubClient",
    "GitHubAPIError",
    "GitHubClient",
    "HttpGitHubClient",
    "PullRequestInfo",
]
