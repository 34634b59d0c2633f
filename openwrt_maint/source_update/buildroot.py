"""Buildroot gateway for package Makefile operations.

This module handles:
- Reading package variables with ``make var.NAME``
- Downloading and packing sources with ``make download``
- Running the package ``check`` target

All make invocations run with TOPDIR exported and the host staging tools
first on PATH, as the buildroot expects.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from openwrt_maint.source_update.makefile import parse_make_vars

logger = logging.getLogger(__name__)


class BuildrootError(Exception):
    """Raised when a make invocation fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "make_error",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


def find_make() -> str:
    """Return the GNU make executable, preferring ``gmake``.

    Raises:
        BuildrootError: If neither gmake nor make is on PATH.
    """
    for name in ("gmake", "make"):
        path = shutil.which(name)
        if path:
            return path
    raise BuildrootError("Unable to locate `make` executable", code="missing_make")


class Buildroot(ABC):
    """Make-based operations on package directories."""

    @abstractmethod
    def read_vars(self, package_dir: Path, names: Sequence[str]) -> dict[str, str]:
        """Return the values of package variables (missing ones as '')."""

    @abstractmethod
    def download(self, package_dir: Path) -> None:
        """Download and pack the package sources into ``<topdir>/dl``."""

    @abstractmethod
    def check(self, package_dir: Path) -> None:
        """Run the package's ``check`` target."""


class MakeBuildroot(Buildroot):
    """Buildroot backed by GNU make."""

    def __init__(self, topdir: Path, make: str | None = None) -> None:
        """Create a MakeBuildroot.

        Args:
            topdir: Buildroot top directory.
            make: make executable; located with find_make() if None.
        """
        self.topdir = topdir.resolve()
        self.make = make or find_make()

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["TOPDIR"] = str(self.topdir)
        host_bin = self.topdir / "staging_dir" / "host" / "bin"
        env["PATH"] = f"{host_bin}{os.pathsep}{env.get('PATH', '')}"
        return env

    def _make(
        self, package_dir: Path, args: Sequence[str], capture: bool
    ) -> subprocess.CompletedProcess[str]:
        cmd = [self.make, "-C", str(package_dir), *args]
        logger.info("Executing: %s", shlex.join(cmd))
        try:
            result = subprocess.run(
                cmd,
                env=self._env(),
                capture_output=capture,
                text=True,
                check=False,
            )
        except OSError as e:
            raise BuildrootError(
                f"Failed to run make: {e}", code="execution_error"
            ) from e

        if result.returncode != 0:
            detail = (result.stderr or "").strip() if capture else ""
            raise BuildrootError(
                f"'{shlex.join(cmd)}' failed with exit code {result.returncode}"
                + (f": {detail}" if detail else ""),
                exit_code=result.returncode,
            )
        return result

    def read_vars(self, package_dir: Path, names: Sequence[str]) -> dict[str, str]:
        args = ["--no-print-directory", *(f"var.{name}" for name in names)]
        result = self._make(package_dir, args, capture=True)
        values = parse_make_vars(result.stdout)
        return {name: values.get(name, "") for name in names}

    def download(self, package_dir: Path) -> None:
        self._make(
            package_dir, ["download", "CONFIG_SRC_TREE_OVERRIDE="], capture=False
        )

    def check(self, package_dir: Path) -> None:
        self._make(package_dir, ["--no-print-directory", "check"], capture=False)


class FakeBuildroot(Buildroot):
    """In-memory Buildroot for testing.

    Constructor Injection:
    ---------------------
    - variables: Values returned by read_vars()
    - topdir: Where download() writes ``dl/<PKG_SOURCE>``
    - archive_content: Bytes written by download()
    - fail_download / fail_check: Raise BuildrootError from these calls

    Mutation Tracking:
    -----------------
    - downloads / checks: Package directories passed to download()/check()
    """

    def __init__(
        self,
        variables: dict[str, str],
        topdir: Path,
        archive_content: bytes = b"archive",
        fail_download: bool = False,
        fail_check: bool = False,
    ) -> None:
        self.variables = dict(variables)
        self.topdir = topdir
        self.archive_content = archive_content
        self.fail_download = fail_download
        self.fail_check = fail_check
        self.downloads: list[Path] = []
        self.checks: list[Path] = []

    def read_vars(self, package_dir: Path, names: Sequence[str]) -> dict[str, str]:
        return {name: self.variables.get(name, "") for name in names}

    def download(self, package_dir: Path) -> None:
        self.downloads.append(package_dir)
        if self.fail_download:
            raise BuildrootError("simulated download failure", exit_code=2)
        dl_dir = self.topdir / "dl"
        dl_dir.mkdir(parents=True, exist_ok=True)
        (dl_dir / self.variables["PKG_SOURCE"]).write_bytes(self.archive_content)

    def check(self, package_dir: Path) -> None:
        self.checks.append(package_dir)
        if self.fail_check:
            raise BuildrootError("simulated check failure", exit_code=2)


__all__ = [
    "Buildroot",
    "BuildrootError",
    "FakeBuildroot",
    "MakeBuildroot",
    "find_make",
]
