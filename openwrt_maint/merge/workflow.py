"""Rebase-and-fast-forward merge of a GitHub pull request.

The workflow is a single forward path:

    VALIDATE -> SYNC_TARGET -> FETCH_PR_BRANCH -> REBASE_PR_BRANCH ->
    FORCE_PUSH_FORK -> DIRTY_CHECK -> FF_MERGE -> [CONFIRM] -> PUSH_TARGET ->
    [NOTIFY_GITHUB] -> DELETE_TEMP_BRANCH -> DONE

Any failing stage raises MergeError carrying its exit code. Nothing is
retried and nothing done by earlier stages is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from openwrt_maint.git.abc import Git
from openwrt_maint.git.commands import GitCommandError
from openwrt_maint.github.client import GitHubAPIError, GitHubClient
from openwrt_maint.github.models import PullRequestInfo
from openwrt_maint.merge.errors import MergeError
from openwrt_maint.merge.validation import check_pull_request
from openwrt_maint.prompt import Interaction
from openwrt_maint.types import ExitCode, MergeStage

logger = logging.getLogger(__name__)


@dataclass
class MergeRequest:
    """Parameters of a single merge run.

    Attributes:
        pr_id: Pull request number.
        branch: Local target branch the PR is merged into.
        dry_run: Echo mutating git commands instead of running them.
        remote: Remote holding the canonical target branch.
        repo: GitHub repository slug.
        web_url: GitHub web base URL, used for the manual review link.
        notify: Comment on and close the PR after publishing.
    """

    pr_id: int
    branch: str = "master"
    dry_run: bool = False
    remote: str = "origin"
    repo: str = "openwrt/openwrt"
    web_url: str = "https://github.com"
    notify: bool = False

    @property
    def upstream_ref(self) -> str:
        return f"{self.remote}/{self.branch}"

    @property
    def review_url(self) -> str:
        return f"{self.web_url.rstrip('/')}/{self.repo}/pull/{self.pr_id}"

    @property
    def default_comment(self) -> str:
        return f"Thanks! Rebased on top of {self.branch} and merged!"


@dataclass
class MergeOutcome:
    """What a merge run did."""

    pr: PullRequestInfo
    temp_branch: str
    merged: bool = False
    pushed: bool = False
    notified: bool = False
    branch_deleted: bool = False
    stages: list[MergeStage] = field(default_factory=list)


class PullRequestMerger:
    """Drives the merge state machine over a Git and a GitHubClient."""

    def __init__(
        self,
        git: Git,
        github: GitHubClient,
        interaction: Interaction,
    ) -> None:
        self.git = git
        self.github = github
        self.ui = interaction
        self.stages: list[MergeStage] = []

    def _enter(self, stage: MergeStage) -> None:
        logger.debug("Entering stage %s", stage.value)
        self.stages.append(stage)

    def _fail(
        self,
        stage: MergeStage,
        exit_code: ExitCode,
        message: str,
        cause: Exception | None = None,
    ) -> MergeError:
        if cause is not None:
            logger.debug("Stage %s failed: %s", stage.value, cause)
            message = f"{message}: {cause}"
        return MergeError(message, stage, exit_code)

    def run(self, request: MergeRequest) -> MergeOutcome:
        """Rebase and merge a pull request.

        Args:
            request: Parameters of the run.

        Returns:
            MergeOutcome describing what was done.

        Raises:
            MergeError: On the first failing stage.
        """
        self.stages = []
        pr = self._validate(request)
        outcome = MergeOutcome(pr=pr, temp_branch=pr.temp_branch, stages=self.stages)

        self._sync_target(request)
        self._fetch_pr_branch(request, pr)
        try:
            self._rebase_pr_branch(request, pr)
            self._force_push_fork(pr)
            self._merge(request, pr)
            outcome.merged = True

            if self._confirm_push(request):
                self._push_target(request)
                outcome.pushed = True
                if request.notify and not request.dry_run:
                    self._notify(request, outcome)
                    outcome.notified = True
        finally:
            outcome.branch_deleted = self._cleanup(pr.temp_branch)

        self._enter(MergeStage.DONE)
        if outcome.pushed or request.dry_run:
            self.ui.status("")
            self.ui.status(f"The PR #{pr.id} has been merged!")
        else:
            self.ui.status(
                f"PR #{pr.id} is merged into local {request.branch} but was not pushed."
            )
        return outcome

    # ============================================================================
    # Stages
    # ============================================================================

    def _validate(self, request: MergeRequest) -> PullRequestInfo:
        stage = MergeStage.VALIDATE
        self._enter(stage)

        if request.pr_id < 1:
            raise self._fail(
                stage, ExitCode.USAGE, f"Invalid pull request ID: {request.pr_id}"
            )
        if not self.git.is_available():
            raise self._fail(
                stage, ExitCode.USAGE, "git could not be found! This tool requires git!"
            )
        if not self.git.branch_exists(request.branch):
            raise self._fail(
                stage,
                ExitCode.BRANCH_MISSING,
                f"Given rebase branch '{request.branch}' does not exist!",
            )

        try:
            pr = self.github.get_pull_request(request.pr_id)
        except GitHubAPIError as e:
            raise self._fail(
                stage,
                ExitCode.PR_FETCH_FAILED,
                f"Failed fetch PR #{request.pr_id} info",
                e,
            ) from e

        for warning in check_pull_request(pr):
            self.ui.warn(warning)
        return pr

    def _sync_target(self, request: MergeRequest) -> None:
        stage = MergeStage.SYNC_TARGET
        self._enter(stage)
        self.ui.status(f"Pulling current {request.branch} from {request.remote}")

        try:
            self.git.checkout(request.branch)
            self.git.fetch(request.remote)
            rebased = self.git.rebase(request.upstream_ref)
        except GitCommandError as e:
            raise self._fail(
                stage,
                ExitCode.SYNC_TARGET_FAILED,
                f"Failed to update {request.branch} from {request.remote}",
                e,
            ) from e
        if not rebased:
            raise self._fail(
                stage,
                ExitCode.SYNC_TARGET_FAILED,
                f"Failed to rebase {request.branch} with {request.upstream_ref}",
            )

    def _fetch_pr_branch(self, request: MergeRequest, pr: PullRequestInfo) -> None:
        stage = MergeStage.FETCH_PR_BRANCH
        self._enter(stage)

        try:
            existing_url = self.git.remote_get_url(pr.head_user)
            if existing_url is None:
                self.ui.status(
                    f"Adding {pr.head_user} with repo {pr.head_repo_url} to remote"
                )
                self.git.remote_add(pr.head_user, pr.head_repo_url)
            elif existing_url.rstrip("/") != pr.head_repo_url.rstrip("/"):
                self.ui.warn(
                    f"Remote {pr.head_user} points at {existing_url}, "
                    f"not {pr.head_repo_url}; using it anyway"
                )

            self.ui.status(f"Fetching remote {pr.head_user}")
            self.git.fetch(pr.head_user)

            self.ui.status(f"Creating branch {pr.temp_branch}")
            self.git.create_branch(pr.temp_branch, f"{pr.head_user}/{pr.head_branch}")
        except GitCommandError as e:
            raise self._fail(
                stage,
                ExitCode.PR_BRANCH_CHECKOUT_FAILED,
                f"Failed to checkout new branch {pr.temp_branch} "
                f"from {pr.head_user}/{pr.head_branch}",
                e,
            ) from e

    def _rebase_pr_branch(self, request: MergeRequest, pr: PullRequestInfo) -> None:
        stage = MergeStage.REBASE_PR_BRANCH
        self._enter(stage)
        self.ui.status(f"Rebasing {pr.temp_branch} on top of {request.branch}")

        message = f"Failed to rebase {pr.temp_branch} with {request.upstream_ref}"
        try:
            rebased = self.git.rebase(request.upstream_ref)
        except GitCommandError as e:
            raise self._fail(stage, ExitCode.PR_REBASE_FAILED, message, e) from e
        if not rebased:
            raise self._fail(stage, ExitCode.PR_REBASE_FAILED, message)

    def _force_push_fork(self, pr: PullRequestInfo) -> None:
        stage = MergeStage.FORCE_PUSH_FORK
        self._enter(stage)
        self.ui.status(f"Force pushing {pr.temp_branch} to {pr.head_user}")

        try:
            self.git.push(pr.head_user, f"HEAD:{pr.head_branch}", force=True)
        except GitCommandError as e:
            raise self._fail(
                stage,
                ExitCode.FORCE_PUSH_FAILED,
                f"Failed to force push HEAD to {pr.head_user}",
                e,
            ) from e

    def _merge(self, request: MergeRequest, pr: PullRequestInfo) -> None:
        stage = MergeStage.DIRTY_CHECK
        self._enter(stage)
        self.ui.status(f"Returning to {request.branch}")

        try:
            self.git.checkout(request.branch)
            if self.git.rev_parse(request.upstream_ref) is None:
                raise self._fail(
                    stage,
                    ExitCode.MERGE_FAILED,
                    f"Remote tracking branch {request.upstream_ref} does not exist",
                )
            if not self.git.is_ancestor(request.branch, request.upstream_ref):
                raise self._fail(
                    stage,
                    ExitCode.MERGE_FAILED,
                    f"Branch {request.branch} has diverged from "
                    f"{request.upstream_ref}, refusing to merge",
                )
        except GitCommandError as e:
            raise self._fail(
                stage,
                ExitCode.MERGE_FAILED,
                f"Failed to check {request.branch} against {request.upstream_ref}",
                e,
            ) from e

        stage = MergeStage.FF_MERGE
        self._enter(stage)
        self.ui.status(
            f"Actually merging the PR #{pr.id} from branch "
            f"{pr.head_user}/{pr.head_branch}"
        )
        try:
            self.git.merge_ff_only(pr.temp_branch)
        except GitCommandError as e:
            raise self._fail(
                stage,
                ExitCode.MERGE_FAILED,
                f"Failed to merge {pr.head_user}/{pr.head_branch} on {request.branch}",
                e,
            ) from e

    def _confirm_push(self, request: MergeRequest) -> bool:
        self._enter(MergeStage.CONFIRM)
        if request.dry_run:
            return True
        if self.ui.confirm(
            f"Push {request.branch} to {request.remote}?", default=True
        ):
            return True
        self.ui.status(f"Not pushing, {request.branch} is left as is.")
        return False

    def _push_target(self, request: MergeRequest) -> None:
        stage = MergeStage.PUSH_TARGET
        self._enter(stage)
        self.ui.status(f"Pushing {request.branch} to {request.remote}")

        try:
            self.git.push(request.remote, request.branch)
        except GitCommandError as e:
            raise self._fail(
                stage,
                ExitCode.PUSH_FAILED,
                f"Failed to push to {request.branch} but left branch as is",
                e,
            ) from e

    def _notify(self, request: MergeRequest, outcome: MergeOutcome) -> None:
        stage = MergeStage.NOTIFY_GITHUB
        self._enter(stage)

        self.ui.status("")
        self.ui.status(
            "Enter a comment and hit <enter> to close the PR at GitHub automatically now."
        )
        self.ui.status("Hit <ctrl>-<c> to exit.")
        self.ui.status("")
        self.ui.status("If you do not provide a comment, the default will be: ")
        self.ui.status(f"[{request.default_comment}]")
        comment = self.ui.ask("Comment", default=request.default_comment)

        self.ui.status("Sending message to PR...")
        try:
            self.github.post_comment(request.pr_id, comment)
            self.github.close_pull_request(request.pr_id)
        except GitHubAPIError as e:
            logger.error("GitHub notification failed: %s", e)
            raise MergeError(
                "Something failed while sending comment to the PR via the GitHub "
                f"API, please review the state manually at {request.review_url}",
                stage,
                ExitCode.NOTIFY_FAILED,
                outcome=outcome,
            ) from e

    def _cleanup(self, temp_branch: str) -> bool:
        self._enter(MergeStage.DELETE_TEMP_BRANCH)

        try:
            # A stopped rebase detaches HEAD, so it is not seen by current_branch().
            if self.git.rebase_in_progress():
                self.ui.warn(
                    f"Leaving branch {temp_branch} checked out, a rebase is in progress"
                )
                return False
            if self.git.current_branch() == temp_branch:
                # A failed force push leaves HEAD on the branch for inspection.
                self.ui.warn(f"Leaving branch {temp_branch} checked out")
                return False
            self.ui.status(f"Deleting branch {temp_branch}")
            self.git.delete_branch(temp_branch)
        except GitCommandError as e:
            logger.warning("Failed to delete branch %s: %s", temp_branch, e)
            self.ui.warn(f"Failed to delete branch {temp_branch}: {e}")
            return False
        return True


def merge_pull_request(
    request: MergeRequest,
    git: Git,
    github: GitHubClient,
    interaction: Interaction,
) -> MergeOutcome:
    """Rebase and fast-forward merge a pull request.

    Convenience wrapper around PullRequestMerger.run().
    """
    return PullRequestMerger(git, github, interaction).run(request)


__all__ = [
    "MergeOutcome",
    "MergeRequest",
    "PullRequestMerger",
    "merge_pull_request",
]
