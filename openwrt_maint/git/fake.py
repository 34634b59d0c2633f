"""In-memory fake implementation of the Git gateway for testing.

The fake models just enough of git to drive the merge workflow: a commit
graph, local branches, remotes with their server-side branches, and the
remote-tracking refs that fetch/push update.
"""

from __future__ import annotations

from collections.abc import Iterable

from openwrt_maint.git.abc import Git
from openwrt_maint.git.commands import GitCommandError


class FakeGit(Git):
    """In-memory fake git repository.

    Constructor Injection:
    ---------------------
    - commits: Mapping of commit id to parent ids
    - branches: Local branches (name -> commit id)
    - head: Checked-out branch name
    - remotes: Configured remotes (name -> url)
    - remote_branches: Branches held by each remote server (remote -> name -> id)
    - failing: Operation names that raise GitCommandError, either plain
      (``"push"``) or qualified by first argument (``"push:origin"``)
    - rebase_conflicts: Branch names whose rebase stops with conflicts
    - available: Result of is_available()

    Mutation Tracking:
    -----------------
    - calls: List of (operation, *args) tuples for every mutation attempted
    - rebasing: Branch of a rebase stopped by conflicts; HEAD is detached
      while it is set, as with real git
    """

    def __init__(
        self,
        *,
        commits: dict[str, Iterable[str]] | None = None,
        branches: dict[str, str] | None = None,
        head: str | None = None,
        remotes: dict[str, str] | None = None,
        remote_branches: dict[str, dict[str, str]] | None = None,
        failing: Iterable[str] = (),
        rebase_conflicts: Iterable[str] = (),
        available: bool = True,
    ) -> None:
        self.commits: dict[str, tuple[str, ...]] = {
            sha: tuple(parents) for sha, parents in (commits or {}).items()
        }
        self.branches: dict[str, str] = dict(branches or {})
        self.head = head
        self.remotes: dict[str, str] = dict(remotes or {})
        self.remote_branches: dict[str, dict[str, str]] = {
            name: dict(refs) for name, refs in (remote_branches or {}).items()
        }
        self.tracking: dict[str, str] = {}
        self.failing = set(failing)
        self.rebase_conflicts = set(rebase_conflicts)
        self.available = available
        self.calls: list[tuple[str, ...]] = []
        self.rebasing: str | None = None
        self._counter = 0

    # ============================================================================
    # Graph helpers
    # ============================================================================

    def add_commit(self, *parents: str, sha: str | None = None) -> str:
        """Add a commit to the graph and return its id."""
        if sha is None:
            self._counter += 1
            sha = f"fake{self._counter:04d}"
        self.commits[sha] = tuple(parents)
        return sha

    def _resolve(self, ref: str) -> str | None:
        if ref == "HEAD":
            return self.branches.get(self.head) if self.head else None
        if ref in self.branches:
            return self.branches[ref]
        if ref in self.tracking:
            return self.tracking[ref]
        if ref in self.commits:
            return ref
        return None

    def _reachable(self, start: str) -> set[str]:
        seen: set[str] = set()
        stack = [start]
        while stack:
            sha = stack.pop()
            if sha in seen:
                continue
            seen.add(sha)
            stack.extend(self.commits.get(sha, ()))
        return seen

    def _record(self, op: str, *args: str) -> None:
        self.calls.append((op, *args))
        qualified = f"{op}:{args[0]}" if args else op
        if op in self.failing or qualified in self.failing:
            raise GitCommandError([op, *args], 1, f"simulated {op} failure")

    def _require(self, ref: str, op: str) -> str:
        sha = self._resolve(ref)
        if sha is None:
            raise GitCommandError([op, ref], 128, f"fatal: invalid reference: {ref}")
        return sha

    # ============================================================================
    # Query Operations
    # ============================================================================

    def is_available(self) -> bool:
        return self.available

    def branch_exists(self, name: str) -> bool:
        return name in self.branches

    def current_branch(self) -> str | None:
        return self.head

    def rev_parse(self, ref: str) -> str | None:
        return self._resolve(ref)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        old = self._resolve(ancestor)
        new = self._resolve(descendant)
        if old is None or new is None:
            raise GitCommandError(
                ["merge-base", "--is-ancestor", ancestor, descendant], 128
            )
        return old in self._reachable(new)

    def remote_get_url(self, name: str) -> str | None:
        return self.remotes.get(name)

    def rebase_in_progress(self) -> bool:
        return self.rebasing is not None

    # ============================================================================
    # Mutation Operations
    # ============================================================================

    def checkout(self, ref: str) -> None:
        self._record("checkout", ref)
        if ref not in self.branches:
            raise GitCommandError(["checkout", ref], 1, f"pathspec '{ref}' unknown")
        self.head = ref

    def create_branch(self, name: str, start_point: str) -> None:
        self._record("create_branch", name, start_point)
        if name in self.branches:
            raise GitCommandError(
                ["checkout", "-b", name, start_point],
                128,
                f"fatal: a branch named '{name}' already exists",
            )
        self.branches[name] = self._require(start_point, "checkout")
        self.head = name

    def fetch(self, remote: str) -> None:
        self._record("fetch", remote)
        if remote not in self.remotes:
            raise GitCommandError(["fetch", remote], 128, f"'{remote}' not a remote")
        for branch, sha in self.remote_branches.get(remote, {}).items():
            self.tracking[f"{remote}/{branch}"] = sha

    def rebase(self, onto: str) -> bool:
        self._record("rebase", onto)
        if self.head is None:
            raise GitCommandError(["rebase", onto], 128, "fatal: no current branch")
        if self.head in self.rebase_conflicts:
            self.rebasing = self.head
            self.head = None
            return False

        base = self._require(onto, "rebase")
        base_history = self._reachable(base)

        # Commits on the current branch that are not in the new base,
        # oldest first, following first parents.
        pending: list[str] = []
        sha: str | None = self.branches[self.head]
        while sha is not None and sha not in base_history:
            pending.append(sha)
            parents = self.commits.get(sha, ())
            sha = parents[0] if parents else None

        tip = base
        for _ in reversed(pending):
            tip = self.add_commit(tip)
        self.branches[self.head] = tip
        return True

    def remote_add(self, name: str, url: str) -> None:
        self._record("remote_add", name, url)
        if name in self.remotes:
            raise GitCommandError(
                ["remote", "add", name, url], 3, f"error: remote {name} already exists."
            )
        self.remotes[name] = url
        self.remote_branches.setdefault(name, {})

    def push(self, remote: str, refspec: str, force: bool = False) -> None:
        self._record("push", remote, refspec, *(["--force"] if force else []))
        if remote not in self.remotes:
            raise GitCommandError(["push", remote, refspec], 128, "no such remote")
        source, _, dest = refspec.partition(":")
        dest = dest or (self.head if source == "HEAD" else source) or source
        sha = self._require(source, "push")

        server = self.remote_branches.setdefault(remote, {})
        current = server.get(dest)
        if current is not None and not force and current not in self._reachable(sha):
            raise GitCommandError(
                ["push", remote, refspec], 1, "! [rejected] (non-fast-forward)"
            )
        server[dest] = sha
        self.tracking[f"{remote}/{dest}"] = sha

    def merge_ff_only(self, ref: str) -> None:
        self._record("merge_ff_only", ref)
        if self.head is None:
            raise GitCommandError(["merge", "--ff-only", ref], 128, "no branch")
        target = self._require(ref, "merge")
        current = self.branches[self.head]
        if current not in self._reachable(target):
            raise GitCommandError(
                ["merge", "--ff-only", ref],
                128,
                "fatal: Not possible to fast-forward, aborting.",
            )
        self.branches[self.head] = target

    def delete_branch(self, name: str) -> None:
        self._record("delete_branch", name)
        if name not in self.branches:
            raise GitCommandError(
                ["branch", "-D", name], 1, f"error: branch '{name}' not found."
            )
        if name in (self.head, self.rebasing):
            raise GitCommandError(
                ["branch", "-D", name],
                1,
                f"error: Cannot delete branch '{name}' checked out",
            )
        del self.branches[name]

    # ============================================================================
    # Mutation Tracking Properties
    # ============================================================================

    def calls_for(self, op: str) -> list[tuple[str, ...]]:
        """Return the recorded calls of a single operation."""
        return [call for call in self.calls if call[0] == op]

    @property
    def mutated(self) -> bool:
        """True if any mutating operation was attempted."""
        return bool(self.calls)


__all__ = ["FakeGit"]
