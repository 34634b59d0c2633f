"""Pydantic models for GitHub REST API payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PullRequestInfo(BaseModel):
    """Pull request metadata needed to rebase and merge a PR.

    Attributes:
        id: Pull request number.
        mergeable: GitHub's mergeability verdict; None while still computing.
        maintainer_can_modify: Whether maintainers may push to the head branch.
        head_user: Login of the owner of the head repository.
        head_branch: Name of the head branch in the author's fork.
        head_repo_url: Web URL of the head repository (used as git remote).
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    mergeable: bool | None = None
    maintainer_can_modify: bool = False
    head_user: str = Field(min_length=1)
    head_branch: str = Field(min_length=1)
    head_repo_url: str = Field(min_length=1)

    @classmethod
    def from_api(cls, number: int, payload: dict[str, Any]) -> "PullRequestInfo":
        """Build from a ``GET /repos/{repo}/pulls/{id}`` response body.

        Raises:
            KeyError, TypeError: If the head section is missing (e.g. the
                fork has been deleted).
            pydantic.ValidationError: If field values are invalid.
        """
        head = payload["head"]
        return cls(
            id=number,
            mergeable=payload.get("mergeable"),
            maintainer_can_modify=bool(payload.get("maintainer_can_modify")),
            head_user=head["user"]["login"],
            head_branch=head["ref"],
            head_repo_url=head["repo"]["html_url"],
        )

    @property
    def temp_branch(self) -> str:
        """Name of the local branch that tracks the PR head during a merge."""
        return f"{self.head_branch}-{self.head_user}"


__all__ = ["PullRequestInfo"]
