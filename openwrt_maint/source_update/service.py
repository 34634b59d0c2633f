"""Update a Git-sourced package Makefile to a new upstream revision.

update_package() bare-clones the upstream repository, rewrites
PKG_SOURCE_VERSION / PKG_SOURCE_DATE / PKG_MIRROR_HASH (and resets
PKG_RELEASE), and commits the change with the upstream short log and any
``Fixes:`` references in the message.
"""

from __future__ import annotations

import hashlib
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from openwrt_maint.git.commands import GitCommandError, run_git
from openwrt_maint.source_update.buildroot import (
    Buildroot,
    BuildrootError,
    MakeBuildroot,
)
from openwrt_maint.source_update.fixes import collect_fixes
from openwrt_maint.source_update.makefile import (
    SourceUpdateError,
    find_topdir,
    is_package_makefile,
    replace_mirror_hash,
    resolve_makefile,
    rewrite_makefile,
    validate_source,
)

logger = logging.getLogger(__name__)

PACKAGE_VARIABLES = (
    "PKG_NAME",
    "PKG_RELEASE",
    "PKG_SOURCE_PROTO",
    "PKG_SOURCE_URL",
    "PKG_SOURCE_DATE",
    "PKG_SOURCE_VERSION",
    "PKG_MIRROR_HASH",
)

# Chunk size for hashing (bytes)
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB


@dataclass
class PackageUpdateResult:
    """Result of a package update."""

    name: str
    makefile: Path
    old_version: str
    new_version: str
    source_date: str
    mirror_hash: str
    subject: str
    shortlog: str = ""
    fixes: list[str] = field(default_factory=list)


def compute_file_sha256(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute SHA256 checksum of a file."""
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def _git(args: list[str], cwd: Path, message: str) -> str:
    try:
        return run_git(args, cwd=cwd).stdout
    except GitCommandError as e:
        raise SourceUpdateError(f"{message} ({e})", code="git_error") from e


def update_package(
    makefile_arg: str,
    revision: str = "HEAD",
    topdir: Path | None = None,
    buildroot: Buildroot | None = None,
) -> PackageUpdateResult:
    """Update a package Makefile to an upstream revision and commit it.

    Args:
        makefile_arg: Package name or path to the package Makefile.
        revision: Upstream revision to update to.
        topdir: Buildroot top directory; inferred from the Makefile if None.
        buildroot: Make gateway; a MakeBuildroot for topdir if None.

    Returns:
        PackageUpdateResult describing the committed update.

    Raises:
        SourceUpdateError: If any step fails. Before the commit, the Makefile
            is restored. A failing ``make check`` after the commit raises
            with code 'check_failed' and keeps the commit.
    """
    makefile = resolve_makefile(makefile_arg, topdir)
    if not is_package_makefile(makefile):
        raise SourceUpdateError(
            f"The file '{makefile}' does not appear to be an OpenWrt package Makefile.",
            code="not_package_makefile",
        )

    if topdir is None:
        topdir = find_topdir(makefile)
    if buildroot is None:
        try:
            buildroot = MakeBuildroot(topdir)
        except BuildrootError as e:
            raise SourceUpdateError(str(e), code=e.code) from e

    package_dir = makefile.parent
    try:
        pkg = buildroot.read_vars(package_dir, PACKAGE_VARIABLES)
    except BuildrootError as e:
        raise SourceUpdateError(
            f"Unable to read package variables: {e}", code="make_error"
        ) from e

    source_url = pkg["PKG_SOURCE_URL"]
    old_version = pkg["PKG_SOURCE_VERSION"]
    validate_source(pkg["PKG_SOURCE_PROTO"], source_url)

    original_text = makefile.read_text()
    committed = False
    with tempfile.TemporaryDirectory(prefix="owrt-src-") as tmp:
        clone_dir = Path(tmp)
        try:
            logger.info("Cloning %s", source_url)
            _git(
                ["clone", "--bare", source_url, str(clone_dir)],
                cwd=package_dir,
                message=f"Unable to clone Git repository '{source_url}'",
            )

            commit_range = f"{old_version}..{revision}"
            shortlog = _git(
                [
                    "log",
                    "--reverse",
                    "--no-merges",
                    "--abbrev=12",
                    "--format=%h %s",
                    commit_range,
                ],
                cwd=clone_dir,
                message=(
                    f"Unable to determine changes from commit "
                    f"'{old_version}' to '{revision}'"
                ),
            ).strip()

            date_commit = _git(
                ["log", "-1", "--format=%cd %H", "--date=format:%Y-%m-%d", revision],
                cwd=clone_dir,
                message="Unable to determine target commit ID and date",
            ).strip()
            source_date, _, new_version = date_commit.partition(" ")

            bodies = _git(
                ["log", "--format=%b", commit_range],
                cwd=clone_dir,
                message="Unable to read upstream commit messages",
            )
            fixes = collect_fixes(bodies, source_url)

            makefile.write_text(
                rewrite_makefile(
                    original_text,
                    old_version=old_version,
                    new_version=new_version,
                    old_date=pkg["PKG_SOURCE_DATE"],
                    new_date=source_date,
                    old_release=pkg["PKG_RELEASE"],
                )
            )

            try:
                archive_name = buildroot.read_vars(package_dir, ["PKG_SOURCE"])[
                    "PKG_SOURCE"
                ]
                buildroot.download(package_dir)
            except BuildrootError as e:
                raise SourceUpdateError(
                    f"Unable to download and pack updated Git sources: {e}",
                    code="download_failed",
                ) from e

            archive = topdir / "dl" / archive_name
            try:
                mirror_hash = compute_file_sha256(archive)
            except OSError as e:
                raise SourceUpdateError(
                    f"Unable to determine archive checksum: {e}",
                    code="hash_failed",
                ) from e

            makefile.write_text(
                replace_mirror_hash(
                    makefile.read_text(), pkg["PKG_MIRROR_HASH"], mirror_hash
                )
            )

            subject = f"{pkg['PKG_NAME']}: update to Git {revision} ({source_date})"
            commit_args = ["commit", "--signoff", "--no-edit", "--message", subject]
            if shortlog:
                commit_args += ["--message", shortlog]
            if fixes:
                commit_args += ["--message", fixes]
            commit_args.append(makefile.name)
            _git(commit_args, cwd=package_dir, message="Unable to commit update")
            committed = True
        except BaseException:
            if not committed:
                logger.info("Restoring %s", makefile)
                run_git(
                    ["checkout", "--quiet", makefile.name],
                    cwd=package_dir,
                    check=False,
                )
            raise

    result = PackageUpdateResult(
        name=pkg["PKG_NAME"],
        makefile=makefile,
        old_version=old_version,
        new_version=new_version,
        source_date=source_date,
        mirror_hash=mirror_hash,
        subject=subject,
        shortlog=shortlog,
        fixes=fixes.splitlines(),
    )

    try:
        buildroot.check(package_dir)
    except BuildrootError as e:
        raise SourceUpdateError(
            f"Package check failed for updated Makefile: {e}", code="check_failed"
        ) from e

    return result


__all__ = [
    "PACKAGE_VARIABLES",
    "PackageUpdateResult",
    "compute_file_sha256",
    "update_package",
]
