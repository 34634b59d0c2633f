"""Tests for the GitHub client.

These tests use mocked HTTP responses; no network access is required.
"""

import json

import httpx
import pytest
import respx
from pydantic import ValidationError

from openwrt_maint.github import (
    FakeGitHubClient,
    GitHubAPIError,
    HttpGitHubClient,
    PullRequestInfo,
)

API = "https://api.github.com/repos/openwrt/openwrt"


def pr_payload(**overrides) -> dict:
    payload = {
        "number": 12345,
        "mergeable": True,
        "maintainer_can_modify": True,
        "head": {
            "ref": "ath79-fix",
            "user": {"login": "carol"},
            "repo": {"html_url": "https://github.com/carol/openwrt"},
        },
    }
    payload.update(overrides)
    return payload


class TestPullRequestInfo:
    """Tests for PullRequestInfo model."""

    def test_from_api(self):
        """Should extract the head fields."""
        pr = PullRequestInfo.from_api(12345, pr_payload())

        assert pr.id == 12345
        assert pr.mergeable is True
        assert pr.maintainer_can_modify is True
        assert pr.head_user == "carol"
        assert pr.head_branch == "ath79-fix"
        assert pr.head_repo_url == "https://github.com/carol/openwrt"

    def test_null_mergeable(self):
        """Null mergeable should be kept as unknown."""
        pr = PullRequestInfo.from_api(1, pr_payload(mergeable=None))
        assert pr.mergeable is None

    def test_missing_maintainer_flag(self):
        """A missing maintainer_can_modify should read as False."""
        payload = pr_payload()
        del payload["maintainer_can_modify"]
        pr = PullRequestInfo.from_api(1, payload)
        assert pr.maintainer_can_modify is False

    def test_temp_branch(self):
        """Temporary branch should be named after branch and user."""
        pr = PullRequestInfo.from_api(1, pr_payload())
        assert pr.temp_branch == "ath79-fix-carol"

    def test_deleted_fork(self):
        """A PR whose fork is gone has no head repository."""
        payload = pr_payload()
        payload["head"]["repo"] = None
        with pytest.raises(TypeError):
            PullRequestInfo.from_api(1, payload)

    def test_rejects_zero_id(self):
        """Pull request numbers start at 1."""
        with pytest.raises(ValidationError):
            PullRequestInfo(
                id=0,
                head_user="u",
                head_branch="b",
                head_repo_url="https://example.com/u/r",
            )


class TestGetPullRequest:
    """Tests for HttpGitHubClient.get_pull_request."""

    @respx.mock
    def test_success(self):
        """Should fetch and parse the pull request."""
        route = respx.get(f"{API}/pulls/12345").mock(
            return_value=httpx.Response(200, json=pr_payload())
        )

        with httpx.Client() as client:
            github = HttpGitHubClient(client, repo="openwrt/openwrt")
            pr = github.get_pull_request(12345)

        assert route.called
        assert pr.temp_branch == "ath79-fix-carol"
        request = route.calls.last.request
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert "Authorization" not in request.headers

    @respx.mock
    def test_not_found(self):
        """A 404 should raise http_error."""
        respx.get(f"{API}/pulls/1").mock(return_value=httpx.Response(404))

        with httpx.Client() as client, pytest.raises(GitHubAPIError) as exc_info:
            HttpGitHubClient(client, repo="openwrt/openwrt").get_pull_request(1)

        assert exc_info.value.code == "http_error"
        assert exc_info.value.status_code == 404

    @respx.mock
    def test_timeout(self):
        """A timeout should raise with code timeout."""
        respx.get(f"{API}/pulls/1").mock(side_effect=httpx.ReadTimeout("slow"))

        with httpx.Client() as client, pytest.raises(GitHubAPIError) as exc_info:
            HttpGitHubClient(client, repo="openwrt/openwrt").get_pull_request(1)

        assert exc_info.value.code == "timeout"

    @respx.mock
    def test_network_error(self):
        """A connection failure should raise with code network_error."""
        respx.get(f"{API}/pulls/1").mock(side_effect=httpx.ConnectError("refused"))

        with httpx.Client() as client, pytest.raises(GitHubAPIError) as exc_info:
            HttpGitHubClient(client, repo="openwrt/openwrt").get_pull_request(1)

        assert exc_info.value.code == "network_error"

    @respx.mock
    def test_invalid_payload(self):
        """A payload without head data should raise invalid_response."""
        respx.get(f"{API}/pulls/1").mock(
            return_value=httpx.Response(200, json={"number": 1})
        )

        with httpx.Client() as client, pytest.raises(GitHubAPIError) as exc_info:
            HttpGitHubClient(client, repo="openwrt/openwrt").get_pull_request(1)

        assert exc_info.value.code == "invalid_response"

    @respx.mock
    def test_custom_api_url(self):
        """Should honour a custom API base URL."""
        route = respx.get("https://ghe.example.com/api/v3/repos/me/fw/pulls/3").mock(
            return_value=httpx.Response(200, json=pr_payload())
        )

        with httpx.Client() as client:
            HttpGitHubClient(
                client, repo="me/fw", api_url="https://ghe.example.com/api/v3/"
            ).get_pull_request(3)

        assert route.called


class TestNotifyCalls:
    """Tests for commenting on and closing pull requests."""

    @respx.mock
    def test_post_comment(self):
        """Should POST the comment body with token auth."""
        route = respx.post(f"{API}/issues/7/comments").mock(
            return_value=httpx.Response(201, json={"id": 1})
        )

        with httpx.Client() as client:
            github = HttpGitHubClient(client, repo="openwrt/openwrt", token="secret")
            github.post_comment(7, "Thanks!")

        request = route.calls.last.request
        assert json.loads(request.content) == {"body": "Thanks!"}
        assert request.headers["Authorization"].startswith("Basic ")

    @respx.mock
    def test_close_pull_request(self):
        """Should PATCH the state to closed."""
        route = respx.patch(f"{API}/pulls/7").mock(
            return_value=httpx.Response(200, json={"state": "closed"})
        )

        with httpx.Client() as client:
            github = HttpGitHubClient(client, repo="openwrt/openwrt", token="secret")
            github.close_pull_request(7)

        assert json.loads(route.calls.last.request.content) == {"state": "closed"}

    @respx.mock
    def test_forbidden(self):
        """A rejected write should raise http_error."""
        respx.post(f"{API}/issues/7/comments").mock(return_value=httpx.Response(403))

        with httpx.Client() as client, pytest.raises(GitHubAPIError) as exc_info:
            HttpGitHubClient(
                client, repo="openwrt/openwrt", token="bad"
            ).post_comment(7, "x")

        assert exc_info.value.status_code == 403

    def test_requires_token(self):
        """Write calls without a token should fail before any request."""
        with httpx.Client() as client:
            github = HttpGitHubClient(client, repo="openwrt/openwrt")
            assert github.has_token is False
            with pytest.raises(GitHubAPIError) as exc_info:
                github.close_pull_request(7)

        assert exc_info.value.code == "missing_token"


class TestFakeGitHubClient:
    """Tests for FakeGitHubClient."""

    def test_records_calls(self):
        """Should record fetches, comments and closes."""
        pr = PullRequestInfo.from_api(3, pr_payload())
        github = FakeGitHubClient({3: pr})

        assert github.get_pull_request(3) is pr
        github.post_comment(3, "done")
        github.close_pull_request(3)

        assert github.fetched == [3]
        assert github.comments == [(3, "done")]
        assert github.closed == [3]
        assert github.network_calls == 3

    def test_unknown_pull_request(self):
        """Unknown numbers should raise a 404 error."""
        with pytest.raises(GitHubAPIError) as exc_info:
            FakeGitHubClient().get_pull_request(9)
        assert exc_info.value.status_code == 404
