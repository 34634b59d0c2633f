"""Production implementation of the Git gateway using subprocess."""

from __future__ import annotations

from pathlib import Path

from openwrt_maint.git.abc import Git
from openwrt_maint.git.commands import GitCommandError, git_available, run_git
from openwrt_maint.types import CommandResult

# Auto-accept commit messages during rebases
_REBASE_ENV = {"GIT_EDITOR": "true"}


class RealGit(Git):
    """Real implementation of git operations using subprocess."""

    def __init__(self, repo_dir: Path) -> None:
        """Create a RealGit bound to a repository.

        Args:
            repo_dir: Working directory of the repository.
        """
        self.repo_dir = repo_dir

    def _run(self, *args: str, check: bool = True) -> CommandResult:
        return run_git(list(args), cwd=self.repo_dir, check=check)

    # ============================================================================
    # Query Operations
    # ============================================================================

    def is_available(self) -> bool:
        return git_available()

    def branch_exists(self, name: str) -> bool:
        result = self._run(
            "show-ref", "--verify", "--quiet", f"refs/heads/{name}", check=False
        )
        return result.ok

    def current_branch(self) -> str | None:
        result = self._run("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def rev_parse(self, ref: str) -> str | None:
        result = self._run(
            "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False
        )
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._run(
            "merge-base", "--is-ancestor", ancestor, descendant, check=False
        )
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(result.args, result.returncode, result.stderr)

    def remote_get_url(self, name: str) -> str | None:
        result = self._run("remote", "get-url", name, check=False)
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def rebase_in_progress(self) -> bool:
        # Paths are printed relative to the working directory unless absolute.
        result = self._run(
            "rev-parse", "--git-path", "rebase-merge", "--git-path", "rebase-apply"
        )
        paths = [line for line in result.stdout.splitlines() if line]
        return any((self.repo_dir / path).exists() for path in paths)

    # ============================================================================
    # Mutation Operations
    # ============================================================================

    def checkout(self, ref: str) -> None:
        self._run("checkout", ref)

    def create_branch(self, name: str, start_point: str) -> None:
        self._run("checkout", "-b", name, start_point)

    def fetch(self, remote: str) -> None:
        self._run("fetch", remote)

    def rebase(self, onto: str) -> bool:
        result = run_git(
            ["rebase", onto], cwd=self.repo_dir, env=_REBASE_ENV, check=False
        )
        return result.ok

    def remote_add(self, name: str, url: str) -> None:
        self._run("remote", "add", name, url)

    def push(self, remote: str, refspec: str, force: bool = False) -> None:
        args = ["push", remote, refspec]
        if force:
            args.append("--force")
        self._run(*args)

    def merge_ff_only(self, ref: str) -> None:
        self._run("merge", "--ff-only", ref)

    def delete_branch(self, name: str) -> None:
        self._run("branch", "-D", name)


__all__ = ["RealGit"]
