"""Abstract interface for the git operations used by the merge workflow.

All implementations (real, dry-run, fake) must implement this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Git(ABC):
    """Version-control provider bound to a single working repository."""

    # ============================================================================
    # Query Operations
    # ============================================================================

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provider can run git commands at all."""

    @abstractmethod
    def branch_exists(self, name: str) -> bool:
        """Return True if a local branch with this name exists."""

    @abstractmethod
    def current_branch(self) -> str | None:
        """Return the checked-out branch name, or None on a detached HEAD."""

    @abstractmethod
    def rev_parse(self, ref: str) -> str | None:
        """Resolve a ref to a commit id, or None if it does not resolve."""

    @abstractmethod
    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Return True if ancestor is reachable from descendant."""

    @abstractmethod
    def remote_get_url(self, name: str) -> str | None:
        """Return the URL of a named remote, or None if it is not configured."""

    @abstractmethod
    def rebase_in_progress(self) -> bool:
        """Return True if a stopped rebase is waiting to be continued or aborted."""

    # ============================================================================
    # Mutation Operations
    # ============================================================================

    @abstractmethod
    def checkout(self, ref: str) -> None:
        """Check out an existing branch (``git checkout <ref>``)."""

    @abstractmethod
    def create_branch(self, name: str, start_point: str) -> None:
        """Create and check out a branch (``git checkout -b <name> <start>``)."""

    @abstractmethod
    def fetch(self, remote: str) -> None:
        """Fetch all branches of a remote."""

    @abstractmethod
    def rebase(self, onto: str) -> bool:
        """Rebase the current branch onto a ref.

        Returns:
            True on success, False if the rebase stopped (e.g. conflicts).
            A stopped rebase is left in progress.
        """

    @abstractmethod
    def remote_add(self, name: str, url: str) -> None:
        """Add a named remote."""

    @abstractmethod
    def push(self, remote: str, refspec: str, force: bool = False) -> None:
        """Push a refspec to a remote."""

    @abstractmethod
    def merge_ff_only(self, ref: str) -> None:
        """Fast-forward the current branch to ref, refusing any other merge."""

    @abstractmethod
    def delete_branch(self, name: str) -> None:
        """Force-delete a local branch (``git branch -D``)."""


__all__ = ["Git"]
