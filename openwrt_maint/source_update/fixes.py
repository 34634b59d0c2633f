"""Extraction of ``Fixes:`` trailers from upstream commit messages.

Upstream commits reference issues either by URL or by shorthand such as
``GH#123``, ``FS#456``, ``netifd#7`` or ``#8``. The package update commit
lists every referenced issue as a full URL.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

OPENWRT_GITHUB = "https://github.com/openwrt"
OPENWRT_FLYSPRAY = "https://bugs.openwrt.org/?task_id="
OPENWRT_GIT_PROJECT = "://git.openwrt.org/project/"

FIXES_LINE = re.compile(
    r"^Fixes:((?:[ ,]*(?:[A-Za-z0-9_]*#[0-9]+|https?://\S+))+)$"
)
_SEPARATORS = re.compile(r"[,\s]+")
_PROJECT_REF = re.compile(r"^([A-Za-z0-9_]+)#([0-9]+)$")
_BARE_REF = re.compile(r"^#([0-9]+)$")


def extract_fix_references(log_bodies: str) -> list[str]:
    """Return the raw issue references of all ``Fixes:`` lines.

    Only lines consisting entirely of references are considered; a
    ``Fixes: <sha> ("subject")`` commit reference is not an issue.
    """
    refs: list[str] = []
    for line in log_bodies.splitlines():
        match = FIXES_LINE.match(line)
        if match is None:
            continue
        refs.extend(ref for ref in _SEPARATORS.split(match.group(1)) if ref)
    return refs


def resolve_issue_url(ref: str, source_url: str) -> str | None:
    """Map an issue reference to a URL.

    Args:
        ref: Reference such as 'GH#1', 'FS#2', 'ucode#3', '#4' or a URL.
        source_url: PKG_SOURCE_URL of the package, used for bare '#N'.

    Returns:
        The issue URL, or None if the reference cannot be resolved.
    """
    if ref.startswith(("http://", "https://")):
        return ref

    match = _PROJECT_REF.match(ref)
    if match is not None:
        project, number = match.groups()
        if project in ("GH", "openwrt"):
            return f"{OPENWRT_GITHUB}/openwrt/issues/{number}"
        if project == "FS":
            return f"{OPENWRT_FLYSPRAY}{number}"
        return f"{OPENWRT_GITHUB}/{project}/issues/{number}"

    match = _BARE_REF.match(ref)
    if match is not None:
        number = match.group(1)
        if "://github.com/" in source_url:
            repo = source_url.rstrip("/").removesuffix(".git")
            return f"{repo}/issues/{number}"
        if OPENWRT_GIT_PROJECT in source_url:
            project = source_url.split(OPENWRT_GIT_PROJECT, 1)[1]
            project = project.rstrip("/").removesuffix(".git")
            return f"{OPENWRT_GITHUB}/{project}/issues/{number}"

    return None


def version_sort_key(value: str) -> list[int | str]:
    """Sort key ordering embedded numbers numerically ('#9' before '#10')."""
    return [
        int(part) if part.isdigit() else part for part in re.split(r"(\d+)", value)
    ]


def format_fixes(urls: Iterable[str]) -> str:
    """Render a ``Fixes:`` trailer block, sorted and without duplicates."""
    unique = sorted(set(urls), key=version_sort_key)
    return "\n".join(f"Fixes: {url}" for url in unique)


def collect_fixes(log_bodies: str, source_url: str) -> str:
    """Build the ``Fixes:`` block for a range of upstream commit bodies."""
    urls = (
        resolve_issue_url(ref, source_url)
        for ref in extract_fix_references(log_bodies)
    )
    return format_fixes(url for url in urls if url)


__all__ = [
    "collect_fixes",
    "extract_fix_references",
    "format_fixes",
    "resolve_issue_url",
    "version_sort_key",
]
