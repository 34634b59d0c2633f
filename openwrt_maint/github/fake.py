"""In-memory fake GitHubClient for testing."""

from __future__ import annotations

from openwrt_maint.github.client import GitHubAPIError, GitHubClient
from openwrt_maint.github.models import PullRequestInfo


class FakeGitHubClient(GitHubClient):
    """Fake forge client with pre-configured pull requests.

    Constructor Injection:
    ---------------------
    - pull_requests: Pull requests returned by get_pull_request(), by number
    - fail_comment: Raise GitHubAPIError from post_comment()
    - fail_close: Raise GitHubAPIError from close_pull_request()

    Mutation Tracking:
    -----------------
    - fetched: Numbers passed to get_pull_request()
    - comments: (number, body) tuples posted
    - closed: Numbers of closed pull requests
    """

    def __init__(
        self,
        pull_requests: dict[int, PullRequestInfo] | None = None,
        fail_comment: bool = False,
        fail_close: bool = False,
    ) -> None:
        self.pull_requests = dict(pull_requests or {})
        self.fail_comment = fail_comment
        self.fail_close = fail_close
        self.fetched: list[int] = []
        self.comments: list[tuple[int, str]] = []
        self.closed: list[int] = []

    def get_pull_request(self, number: int) -> PullRequestInfo:
        self.fetched.append(number)
        try:
            return self.pull_requests[number]
        except KeyError:
            raise GitHubAPIError(
                f"HTTP error: 404 Not Found (pull request #{number})",
                status_code=404,
                code="http_error",
            ) from None

    def post_comment(self, number: int, body: str) -> None:
        if self.fail_comment:
            raise GitHubAPIError("HTTP error: 403 Forbidden", 403, "http_error")
        self.comments.append((number, body))

    def close_pull_request(self, number: int) -> None:
        if self.fail_close:
            raise GitHubAPIError("HTTP error: 403 Forbidden", 403, "http_error")
        self.closed.append(number)

    @property
    def network_calls(self) -> int:
        """Total number of API calls made."""
        return len(self.fetched) + len(self.comments) + len(self.closed)


__all__ = ["FakeGitHubClient"]
