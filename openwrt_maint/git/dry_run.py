"""No-op Git wrapper for dry-run mode.

Mutating operations are echoed as the git command line that would have run
and are not executed. Read-only operations are delegated to the wrapped
implementation so preconditions are still checked against the real repository.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable

from openwrt_maint.git.abc import Git


class DryRunGit(Git):
    """Wrapper that echoes destructive git operations instead of running them."""

    def __init__(self, wrapped: Git, emit: Callable[[str], None] = print) -> None:
        """Create a dry-run wrapper around a Git implementation.

        Args:
            wrapped: The Git implementation used for read-only queries.
            emit: Callable receiving each echoed command line.
        """
        self._wrapped = wrapped
        self._emit = emit
        self.echoed: list[str] = []

    def _echo(self, *args: str) -> None:
        line = shlex.join(["git", *args])
        self.echoed.append(line)
        self._emit(line)

    # ============================================================================
    # Query Operations (delegate to wrapped implementation)
    # ============================================================================

    def is_available(self) -> bool:
        return self._wrapped.is_available()

    def branch_exists(self, name: str) -> bool:
        return self._wrapped.branch_exists(name)

    def current_branch(self) -> str | None:
        return self._wrapped.current_branch()

    def rev_parse(self, ref: str) -> str | None:
        return self._wrapped.rev_parse(ref)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self._wrapped.is_ancestor(ancestor, descendant)

    def remote_get_url(self, name: str) -> str | None:
        return self._wrapped.remote_get_url(name)

    def rebase_in_progress(self) -> bool:
        return self._wrapped.rebase_in_progress()

    # ============================================================================
    # Mutation Operations (echo only)
    # ============================================================================

    def checkout(self, ref: str) -> None:
        self._echo("checkout", ref)

    def create_branch(self, name: str, start_point: str) -> None:
        self._echo("checkout", "-b", name, start_point)

    def fetch(self, remote: str) -> None:
        self._echo("fetch", remote)

    def rebase(self, onto: str) -> bool:
        self._echo("rebase", onto)
        return True

    def remote_add(self, name: str, url: str) -> None:
        self._echo("remote", "add", name, url)

    def push(self, remote: str, refspec: str, force: bool = False) -> None:
        args = ["push", remote, refspec]
        if force:
            args.append("--force")
        self._echo(*args)

    def merge_ff_only(self, ref: str) -> None:
        self._echo("merge", "--ff-only", ref)

    def delete_branch(self, name: str) -> None:
        self._echo("branch", "-D", name)


__all__ = ["DryRunGit"]
