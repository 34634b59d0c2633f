"""Release tagging service.

This module provides make_tag(), which prepares and tags an OpenWrt release
in a buildroot checkout:
- pins feeds.conf.default to fixed revisions
- sets release defaults in include/version.mk and image-config.in
- commits the adjustments, tags them and reverts to branch defaults

Nothing is pushed; the caller gets the push commands to run.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from openwrt_maint.git.commands import GitCommandError, run_git
from openwrt_maint.tag.feeds import (
    LsRemote,
    SvnRevision,
    git_ls_remote,
    pin_feeds,
    svn_last_revision,
)
from openwrt_maint.tag.version_files import (
    IMAGE_CONFIG,
    VERSION_MK,
    rewrite_image_config,
    rewrite_version_mk,
)

logger = logging.getLogger(__name__)

FEEDS_CONF = "feeds.conf.default"
GETVER_SCRIPT = "scripts/getver.sh"
EPOCH_SCRIPT = "scripts/get_source_date_epoch.sh"
DEFAULT_DOWNLOAD_BASE = "https://downloads.openwrt.org/releases"

VERSION_PATTERN = re.compile(r"^[0-9][^.]*\.[0-9][^.]*\.[0-9]")


class TagError(Exception):
    """Raised when a release cannot be tagged."""

    def __init__(self, message: str, code: str = "tag_error") -> None:
        """Initialize TagError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class TagOptions:
    """Options of a tagging run.

    Attributes:
        version: Release version, e.g. '23.05.3'.
        author: Git author/committer name (defaults to git config user.name).
        email: Git author/committer email (defaults to git config user.email).
        gpg_key_id: Sign the tag with this key.
        gpg_passphrase_file: Passphrase file used for non-interactive signing.
        base_url: Base URL of the release download repositories.
        ignore_existing: Succeed without changes if the tag already exists.
    """

    version: str
    author: str | None = None
    email: str | None = None
    gpg_key_id: str | None = None
    gpg_passphrase_file: Path | None = None
    base_url: str = DEFAULT_DOWNLOAD_BASE
    ignore_existing: bool = False

    def __post_init__(self) -> None:
        if self.gpg_key_id:
            self.gpg_key_id = self.gpg_key_id.removeprefix("0x")
        self.base_url = self.base_url.rstrip("/")


@dataclass
class TagResult:
    """Result of a tagging run."""

    tag: str
    already_existed: bool = False
    distro: str | None = None
    branch: str | None = None
    revnum: str | None = None
    show_output: str = ""
    push_commands: list[str] = field(default_factory=list)


def parse_version(version: str) -> tuple[str, str]:
    """Validate a release version.

    Returns:
        Tuple of (version, base version) where the base version holds the
        first two components, e.g. ('23.05.3', '23.05').

    Raises:
        TagError: If the version does not look like 'X.Y.Z'.
    """
    if not VERSION_PATTERN.match(version):
        raise TagError(
            f"Unexpected version format: {version}", code="invalid_version"
        )
    basever = ".".join(version.split(".")[:2])
    return version, basever


def distro_for_branch(branch: str) -> str:
    """Return the distribution name used in commit and tag messages."""
    if "/lede-" in branch:
        return "LEDE"
    return "OpenWrt"


def _git(topdir: Path, *args: str, env: dict[str, str] | None = None) -> str:
    try:
        return run_git(list(args), cwd=topdir, env=env).stdout
    except GitCommandError as e:
        raise TagError(str(e), code="git_error") from e


def _git_config(topdir: Path, key: str) -> str | None:
    result = run_git(["config", key], cwd=topdir, check=False)
    if not result.ok:
        return None
    return result.stdout.strip() or None


def _run_script(topdir: Path, script: str) -> str:
    path = topdir / script
    try:
        proc = subprocess.run(
            [str(path)],
            cwd=topdir,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise TagError(
            f"{script} failed with exit code {e.returncode}: {e.stderr.strip()}",
            code="script_error",
        ) from e
    except OSError as e:
        raise TagError(f"Unable to run {script}: {e}", code="script_error") from e
    return proc.stdout.strip()


def _rewrite(path: Path, transform: Callable[[str], str]) -> None:
    if not path.is_file():
        raise TagError(f"Missing file: {path}", code="missing_file")
    path.write_text(transform(path.read_text()))


def _write_gpg_wrapper(passphrase_file: Path) -> Path:
    """Create a gpg.program wrapper that signs with a passphrase file."""
    gpg = shutil.which("gpg")
    if gpg is None:
        raise TagError("Unable to locate gpg executable", code="missing_gpg")

    fd, name = tempfile.mkstemp(prefix="owrt-gpg-", suffix=".sh")
    with os.fdopen(fd, "w") as script:
        script.write("#!/usr/bin/env bash\n")
        script.write(
            f'exec {gpg} --batch --passphrase-file {passphrase_file} "$@"\n'
        )
    os.chmod(name, 0o700)
    return Path(name)


def make_tag(
    topdir: Path,
    options: TagOptions,
    ls_remote: LsRemote = git_ls_remote,
    svn_revision: SvnRevision = svn_last_revision,
) -> TagResult:
    """Tag a release in an OpenWrt buildroot.

    Args:
        topdir: Buildroot top directory (must contain feeds.conf.default).
        options: Tagging options.
        ls_remote: Resolver for git feed revisions.
        svn_revision: Resolver for Subversion feed revisions.

    Returns:
        TagResult describing the created tag.

    Raises:
        TagError: If a precondition fails or any step errors out.
    """
    version, basever = parse_version(options.version)
    tag = f"v{version}"

    if not (topdir / FEEDS_CONF).is_file():
        raise TagError(
            f"{topdir} is not a buildroot top directory ({FEEDS_CONF} missing)",
            code="not_buildroot",
        )

    if run_git(["rev-parse", f"{tag}^{{tag}}"], cwd=topdir, check=False).ok:
        if not options.ignore_existing:
            raise TagError(f"Tag {tag} already exists!", code="tag_exists")
        logger.info("Tag %s already exists, nothing to do", tag)
        return TagResult(tag=tag, already_existed=True)

    revnum = _run_script(topdir, GETVER_SCRIPT)
    epoch = _run_script(topdir, EPOCH_SCRIPT)

    ref = run_git(["symbolic-ref", "-q", "HEAD"], cwd=topdir, check=False)
    branch = ref.stdout.strip() if ref.ok else ""
    short_branch = branch.removeprefix("refs/heads/")
    if not branch.endswith(f"-{basever}"):
        raise TagError(
            f'Expecting current branch name to end in "-{basever}", '
            f'but it is "{short_branch}" - aborting.',
            code="wrong_branch",
        )
    distro = distro_for_branch(branch)

    author = options.author or _git_config(topdir, "user.name")
    email = options.email or _git_config(topdir, "user.email")
    env: dict[str, str] = {}
    if author:
        env["GIT_AUTHOR_NAME"] = env["GIT_COMMITTER_NAME"] = author
    if email:
        env["GIT_AUTHOR_EMAIL"] = env["GIT_COMMITTER_EMAIL"] = email

    repo_url = f"{options.base_url}/{version}"
    logger.info("Tagging %s %s on %s (revision %s)", distro, tag, short_branch, revnum)

    _rewrite(topdir / FEEDS_CONF, lambda t: pin_feeds(t, ls_remote, svn_revision))
    _rewrite(
        topdir / VERSION_MK,
        lambda t: rewrite_version_mk(t, version, revnum, repo_url),
    )
    _rewrite(topdir / IMAGE_CONFIG, lambda t: rewrite_image_config(t, repo_url))

    (topdir / "version").write_text(f"{revnum}\n")
    (topdir / "version.date").write_text(f"{epoch}\n")
    _git(topdir, "add", "version", "version.date")

    _git(
        topdir,
        "commit",
        "-sm",
        f"{distro} {tag}: adjust config defaults",
        FEEDS_CONF,
        VERSION_MK,
        IMAGE_CONFIG,
        "version",
        "version.date",
        env=env,
    )

    gpg_script: Path | None = None
    if options.gpg_key_id and options.gpg_passphrase_file:
        gpg_script = _write_gpg_wrapper(options.gpg_passphrase_file)
    try:
        tag_args: list[str] = []
        if gpg_script is not None:
            tag_args += ["-c", f"gpg.program={gpg_script}"]
        tag_args += ["tag", "-a", tag, "-m", f"{distro} {tag} Release"]
        if options.gpg_key_id:
            tag_args += ["-s", "-u", options.gpg_key_id]
        _git(topdir, *tag_args, env=env)
    finally:
        if gpg_script is not None:
            gpg_script.unlink(missing_ok=True)

    _git(topdir, "revert", "--no-edit", "HEAD", env=env)
    _git(
        topdir,
        "commit",
        "--amend",
        "-sm",
        f"{distro} {tag}: revert to branch defaults",
        env=env,
    )

    show_output = _git(topdir, "--no-pager", "show", tag)

    return TagResult(
        tag=tag,
        distro=distro,
        branch=short_branch,
        revnum=revnum,
        show_output=show_output,
        push_commands=[
            f'git push origin "{short_branch}"',
            f'git push --follow-tags origin "refs/tags/{tag}:refs/tags/{tag}"',
        ],
    )


__all__ = [
    "DEFAULT_DOWNLOAD_BASE",
    "TagError",
    "TagOptions",
    "TagResult",
    "distro_for_branch",
    "make_tag",
    "parse_version",
]
