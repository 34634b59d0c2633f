"""Pinning of feeds.conf entries to fixed revisions.

A release must build the same feed revisions forever, so every ``src-git``
feed gets an explicit ``^<sha1>`` and every ``src-svn`` feed a ``;<rev>``.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

from openwrt_maint.git.commands import run_git
from openwrt_maint.types import FeedKind

logger = logging.getLogger(__name__)

DEFAULT_FEED_BRANCH = "master"
SHA1_LENGTH = 40

LsRemote = Callable[[str, str], str | None]
SvnRevision = Callable[[str], str | None]


@dataclass
class FeedEntry:
    """One ``<type> <name> <url>`` line of feeds.conf."""

    kind: str
    name: str
    url: str

    def render(self) -> str:
        return f"{self.kind} {self.name} {self.url}"


def parse_feed_line(line: str) -> FeedEntry | None:
    """Split a feeds.conf line into its fields.

    Returns:
        FeedEntry for ``src-*`` lines, None for anything else (comments,
        blank lines).
    """
    parts = line.split(maxsplit=2)
    if not parts or not parts[0].startswith("src-"):
        return None
    kind = parts[0]
    name = parts[1] if len(parts) > 1 else ""
    url = parts[2].strip() if len(parts) > 2 else ""
    return FeedEntry(kind=kind, name=name, url=url)


def _strip_suffix_from(url: str, separators: str) -> str:
    """Drop everything from the last of the given separator characters."""
    cut = max(url.rfind(sep) for sep in separators)
    return url[:cut] if cut >= 0 else url


def pin_feed(
    entry: FeedEntry,
    ls_remote: LsRemote,
    svn_revision: SvnRevision,
) -> FeedEntry:
    """Return the entry pinned to a fixed revision.

    Args:
        entry: Parsed feed line.
        ls_remote: Callable(url, ref) returning the commit id of ref, or None.
        svn_revision: Callable(url) returning the latest revision, or None.

    Returns:
        New FeedEntry; unchanged for source types that cannot be pinned.
    """
    url = entry.url

    if entry.kind in (FeedKind.GIT.value, FeedKind.GIT_FULL.value):
        if "^" in url:
            sha: str | None = url.rsplit("^", 1)[1]
        elif ";" in url:
            base, ref = url.rsplit(";", 1)
            sha = ls_remote(base, ref)
        else:
            sha = ls_remote(url, DEFAULT_FEED_BRANCH)

        pinned = _strip_suffix_from(url, ";^")
        if sha:
            pinned += f"^{sha[:SHA1_LENGTH]}"
        else:
            logger.warning("Could not resolve revision of feed %s", entry.name)
        return FeedEntry(entry.kind, entry.name, pinned)

    if entry.kind == FeedKind.SVN.value:
        if ";" in url:
            base, rev = url.rsplit(";", 1)
        else:
            base, rev = url, svn_revision(url) or ""
        pinned = f"{base};{rev}" if rev else base
        return FeedEntry(entry.kind, entry.name, pinned)

    return entry


def pin_feeds(
    text: str,
    ls_remote: LsRemote,
    svn_revision: SvnRevision,
) -> str:
    """Pin every feed of a feeds.conf file.

    Only ``src-*`` lines are carried over; comments and blank lines are
    dropped.
    """
    lines: list[str] = []
    for line in text.splitlines():
        entry = parse_feed_line(line)
        if entry is None:
            continue
        lines.append(pin_feed(entry, ls_remote, svn_revision).render())
    return "".join(f"{line}\n" for line in lines)


def git_ls_remote(url: str, ref: str) -> str | None:
    """Resolve a ref of a remote repository with ``git ls-remote``."""
    result = run_git(["ls-remote", url, ref], check=False)
    if not result.ok:
        logger.warning("git ls-remote %s %s failed: %s", url, ref, result.stderr)
        return None
    first = result.stdout.split()
    return first[0] if first else None


def svn_last_revision(url: str) -> str | None:
    """Return the latest revision of a Subversion URL (e.g. ``r12345``)."""
    try:
        proc = subprocess.run(
            ["svn", "log", "-l", "1", url],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning("svn log %s failed: %s", url, e)
        return None

    lines = proc.stdout.splitlines()
    if len(lines) < 2 or not lines[1].strip():
        return None
    return lines[1].split(" ", 1)[0]


__all__ = [
    "FeedEntry",
    "git_ls_remote",
    "parse_feed_line",
    "pin_feed",
    "pin_feeds",
    "svn_last_revision",
]
