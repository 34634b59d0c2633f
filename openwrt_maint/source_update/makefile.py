"""Helpers for locating and editing OpenWrt package Makefiles."""

from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

logger = logging.getLogger(__name__)

SUPPORTED_URL_PREFIXES = ("http://", "https://", "git://", "file:")


class SourceUpdateError(Exception):
    """Raised when a package cannot be updated."""

    def __init__(self, message: str, code: str = "source_update_error") -> None:
        """Initialize SourceUpdateError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


def resolve_makefile(name_or_path: str, topdir: Path | None = None) -> Path:
    """Find a package Makefile from a path or a package name.

    Args:
        name_or_path: Path to a Makefile, or a package name such as 'netifd'
            or 'utils/ucode' looked up below ``<topdir>/package``.
        topdir: Buildroot top directory; the current directory if None.

    Returns:
        Path to the Makefile.

    Raises:
        SourceUpdateError: If no Makefile can be found.
    """
    path = Path(name_or_path)
    if path.is_file():
        return path

    package_root = (topdir or Path(".")) / "package"
    suffix = f"/{name_or_path.strip('/')}/Makefile"
    if package_root.is_dir():
        for candidate in sorted(package_root.rglob("Makefile")):
            if candidate.is_file() and candidate.as_posix().endswith(suffix):
                logger.debug("Resolved package %s to %s", name_or_path, candidate)
                return candidate

    raise SourceUpdateError(
        f"Unable to find a Makefile for '{name_or_path}'", code="makefile_not_found"
    )


def is_package_makefile(path: Path) -> bool:
    """Return True if the file looks like an OpenWrt package Makefile."""
    try:
        return "BuildPackage" in path.read_text()
    except OSError:
        return False


def find_topdir(makefile: Path) -> Path:
    """Infer the buildroot top directory from a package Makefile path.

    Walks up from the directory above the package until a directory holding
    ``rules.mk`` is found.

    Raises:
        SourceUpdateError: If no such directory exists.
    """
    package_dir = makefile.resolve().parent
    for candidate in package_dir.parents:
        if (candidate / "rules.mk").is_file():
            return candidate
    raise SourceUpdateError(
        "Unable to determine buildroot directory.", code="topdir_not_found"
    )


def validate_source(proto: str, url: str) -> None:
    """Check the package fetches its sources from a supported Git URL.

    Raises:
        SourceUpdateError: For any other protocol/URL combination.
    """
    if proto != "git" or not url.startswith(SUPPORTED_URL_PREFIXES):
        raise SourceUpdateError(
            f"Unsupported combination of source protocol ('{proto}') "
            f"and url ('{url}').",
            code="unsupported_source",
        )


def parse_make_vars(output: str) -> dict[str, str]:
    """Parse ``NAME='value'`` lines printed by ``make var.NAME``."""
    values: dict[str, str] = {}
    for line in output.splitlines():
        name, sep, raw = line.partition("=")
        name = name.strip()
        if not sep or not name.isidentifier():
            continue
        try:
            values[name] = " ".join(shlex.split(raw))
        except ValueError:
            values[name] = raw.strip()
    return values


def _replace_word(text: str, variable: str, old: str, new: str) -> str:
    """Replace the first whole-word ``old`` on lines mentioning variable."""
    if not old:
        return text
    pattern = re.compile(rf"(?<![\w]){re.escape(old)}(?![\w])")
    out: list[str] = []
    for line in text.splitlines(keepends=True):
        if variable in line:
            line = pattern.sub(lambda _: new, line, count=1)
        out.append(line)
    return "".join(out)


def rewrite_makefile(
    text: str,
    old_version: str,
    new_version: str,
    old_date: str,
    new_date: str,
    old_release: str = "",
) -> str:
    """Point a package Makefile at a new upstream commit.

    Sets PKG_SOURCE_VERSION and PKG_SOURCE_DATE, and resets PKG_RELEASE to 1
    unless it is already 1 or unset.
    """
    text = _replace_word(text, "PKG_SOURCE_VERSION", old_version, new_version)
    text = _replace_word(text, "PKG_SOURCE_DATE", old_date, new_date)
    if old_release and old_release != "1":
        text = _replace_word(text, "PKG_RELEASE", old_release, "1")
    return text


def replace_mirror_hash(text: str, old_hash: str, new_hash: str) -> str:
    """Set PKG_MIRROR_HASH to the checksum of the regenerated tarball."""
    return _replace_word(text, "PKG_MIRROR_HASH", old_hash, new_hash)


__all__ = [
    "SUPPORTED_URL_PREFIXES",
    "SourceUpdateError",
    "find_topdir",
    "is_package_makefile",
    "parse_make_vars",
    "replace_mirror_hash",
    "resolve_makefile",
    "rewrite_makefile",
    "validate_source",
]
