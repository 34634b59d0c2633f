"""Rewriting of buildroot version defaults for a release commit."""

from __future__ import annotations

import re

VERSION_MK = "include/version.mk"
IMAGE_CONFIG = "package/base-files/image-config.in"

_DOWNLOAD_URL = re.compile(
    r"(?:http|https)://downloads\.(?:openwrt|lede-project)\.org/[^\"]*"
)
_CODE_FILENAMES_CONFIG = "config VERSION_CODE_FILENAMES"


def _replace_if_default(text: str, variable: str, value: str) -> str:
    """Replace the fallback of ``VAR:=$(if <cond>,<...>,<fallback>)``."""
    pattern = re.compile(rf"({re.escape(variable)}:=\$\(if .*),[^,]*\)")
    return pattern.sub(lambda m: f"{m.group(1)},{value})", text)


def rewrite_version_mk(text: str, version: str, revnum: str, repo_url: str) -> str:
    """Set release defaults in include/version.mk.

    Args:
        text: Current file content.
        version: Release version, e.g. '23.05.3'.
        revnum: Revision code from scripts/getver.sh.
        repo_url: Package repository URL of the release.

    Returns:
        Adjusted file content.
    """
    text = _replace_if_default(text, "VERSION_NUMBER", version)
    text = _replace_if_default(text, "VERSION_CODE", revnum)
    return _replace_if_default(text, "VERSION_REPO", repo_url)


def rewrite_image_config(text: str, repo_url: str) -> str:
    """Set release defaults in package/base-files/image-config.in.

    Download URLs point at the release repository, and the first
    ``default y`` following ``config VERSION_CODE_FILENAMES`` becomes
    ``default n``.
    """
    text = _DOWNLOAD_URL.sub(lambda _: repo_url, text)

    out: list[str] = []
    searching = False
    for line in text.splitlines(keepends=True):
        if searching and "default y" in line:
            line = line.replace("default y", "default n", 1)
            searching = False
        elif _CODE_FILENAMES_CONFIG in line:
            searching = True
        out.append(line)
    return "".join(out)


__all__ = [
    "IMAGE_CONFIG",
    "VERSION_MK",
    "rewrite_image_config",
    "rewrite_version_mk",
]
