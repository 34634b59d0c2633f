"""GitHub REST API client.

This module handles:
- Fetching pull request metadata
- Posting a closing comment and closing a pull request

Only the handful of endpoints the merge workflow needs are covered.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError

from openwrt_maint.github.models import PullRequestInfo

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

# Password half of the basic-auth pair used with personal access tokens
TOKEN_AUTH_PASSWORD = "x-oauth-basic"


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = "github_error",
    ) -> None:
        """Initialize GitHubAPIError.

        Args:
            message: Error description.
            status_code: HTTP status code, if a response was received.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class GitHubClient(ABC):
    """Forge API capability used by the merge workflow."""

    @abstractmethod
    def get_pull_request(self, number: int) -> PullRequestInfo:
        """Fetch metadata of a pull request."""

    @abstractmethod
    def post_comment(self, number: int, body: str) -> None:
        """Post a comment on a pull request."""

    @abstractmethod
    def close_pull_request(self, number: int) -> None:
        """Transition a pull request to the closed state."""


class HttpGitHubClient(GitHubClient):
    """GitHubClient backed by httpx."""

    def __init__(
        self,
        client: httpx.Client,
        repo: str,
        token: str | None = None,
        api_url: str = GITHUB_API_URL,
        timeout: float | None = None,
    ) -> None:
        """Create a client for one repository.

        Args:
            client: HTTPX client instance.
            repo: Repository slug, e.g. 'openwrt/openwrt'.
            token: Personal access token; required for write calls.
            api_url: Base URL of the REST API.
            timeout: Request timeout in seconds (None = no timeout).
        """
        self._client = client
        self.repo = repo
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _request(
        self,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        authenticated: bool = False,
    ) -> httpx.Response:
        url = f"{self.api_url}/repos/{self.repo}/{path}"
        auth: tuple[str, str] | None = None
        if authenticated:
            if not self._token:
                raise GitHubAPIError(
                    f"A GitHub token is required for {method} {url}",
                    code="missing_token",
                )
            auth = (self._token, TOKEN_AUTH_PASSWORD)

        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(
                method,
                url,
                json=json_body,
                auth=auth,
                headers={"Accept": "application/vnd.github+json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            logger.info("%s %s -> %d", method, url, response.status_code)
            return response
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"HTTP error from {method} {url}: "
                f"{e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise GitHubAPIError(
                f"Timeout during {method} {url}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise GitHubAPIError(
                f"Network error during {method} {url}: {e}",
                code="network_error",
            ) from e

    def get_pull_request(self, number: int) -> PullRequestInfo:
        """Fetch metadata of a pull request.

        Raises:
            GitHubAPIError: If the request fails or the payload is unusable.
        """
        response = self._request("GET", f"pulls/{number}")
        try:
            return PullRequestInfo.from_api(number, response.json())
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise GitHubAPIError(
                f"Unexpected pull request payload for #{number}: {e}",
                status_code=response.status_code,
                code="invalid_response",
            ) from e

    def post_comment(self, number: int, body: str) -> None:
        self._request(
            "POST",
            f"issues/{number}/comments",
            json_body={"body": body},
            authenticated=True,
        )

    def close_pull_request(self, number: int) -> None:
        self._request(
            "PATCH",
            f"pulls/{number}",
            json_body={"state": "closed"},
            authenticated=True,
        )


__all__ = [
    "GITHUB_API_URL",
    "GitHubAPIError",
    "GitHubClient",
    "HttpGitHubClient",
]
