"""Tests for source_update/buildroot.py module.

make is never executed: subprocess.run is mocked.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from openwrt_maint.source_update.buildroot import (
    BuildrootError,
    FakeBuildroot,
    MakeBuildroot,
    find_make,
)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestFindMake:
    """Tests for find_make function."""

    def test_prefers_gmake(self):
        """gmake should be preferred over make."""
        with patch(
            "openwrt_maint.source_update.buildroot.shutil.which",
            side_effect=lambda name: f"/usr/bin/{name}",
        ):
            assert find_make() == "/usr/bin/gmake"

    def test_falls_back_to_make(self):
        with patch(
            "openwrt_maint.source_update.buildroot.shutil.which",
            side_effect=lambda name: "/usr/bin/make" if name == "make" else None,
        ):
            assert find_make() == "/usr/bin/make"

    def test_missing(self):
        """No make on PATH should raise missing_make."""
        with patch(
            "openwrt_maint.source_update.buildroot.shutil.which", return_value=None
        ):
            with pytest.raises(BuildrootError) as exc_info:
                find_make()
        assert exc_info.value.code == "missing_make"


class TestMakeBuildroot:
    """Tests for MakeBuildroot command composition."""

    @pytest.fixture
    def buildroot(self, tmp_path) -> MakeBuildroot:
        return MakeBuildroot(tmp_path, make="/usr/bin/make")

    def test_read_vars(self, buildroot, tmp_path):
        """Variables should be read with var.NAME targets."""
        output = "PKG_NAME='netifd'\nPKG_RELEASE='2'\n"
        with patch(
            "openwrt_maint.source_update.buildroot.subprocess.run",
            return_value=completed(stdout=output),
        ) as run:
            values = buildroot.read_vars(
                tmp_path / "pkg", ["PKG_NAME", "PKG_RELEASE", "PKG_X"]
            )

        assert values == {"PKG_NAME": "netifd", "PKG_RELEASE": "2", "PKG_X": ""}
        cmd = run.call_args.args[0]
        assert cmd == [
            "/usr/bin/make",
            "-C",
            str(tmp_path / "pkg"),
            "--no-print-directory",
            "var.PKG_NAME",
            "var.PKG_RELEASE",
            "var.PKG_X",
        ]

    def test_environment(self, buildroot, tmp_path):
        """TOPDIR should be exported and host tools put first on PATH."""
        with patch(
            "openwrt_maint.source_update.buildroot.subprocess.run",
            return_value=completed(),
        ) as run:
            buildroot.download(tmp_path / "pkg")

        env = run.call_args.kwargs["env"]
        assert env["TOPDIR"] == str(tmp_path.resolve())
        assert env["PATH"].startswith(
            str(tmp_path.resolve() / "staging_dir" / "host" / "bin")
        )
        assert run.call_args.args[0][-2:] == ["download", "CONFIG_SRC_TREE_OVERRIDE="]

    def test_check(self, buildroot, tmp_path):
        with patch(
            "openwrt_maint.source_update.buildroot.subprocess.run",
            return_value=completed(),
        ) as run:
            buildroot.check(tmp_path / "pkg")
        assert run.call_args.args[0][-1] == "check"

    def test_failure(self, buildroot, tmp_path):
        """A non-zero exit should raise with the exit code."""
        with patch(
            "openwrt_maint.source_update.buildroot.subprocess.run",
            return_value=completed(returncode=2, stderr="No rule to make target"),
        ):
            with pytest.raises(BuildrootError) as exc_info:
                buildroot.read_vars(tmp_path / "pkg", ["PKG_NAME"])

        assert exc_info.value.exit_code == 2
        assert "No rule to make target" in str(exc_info.value)

    def test_execution_error(self, buildroot, tmp_path):
        """A make binary that cannot run should raise execution_error."""
        with patch(
            "openwrt_maint.source_update.buildroot.subprocess.run",
            side_effect=FileNotFoundError("make"),
        ):
            with pytest.raises(BuildrootError) as exc_info:
                buildroot.check(tmp_path / "pkg")
        assert exc_info.value.code == "execution_error"


class TestFakeBuildroot:
    """Tests for FakeBuildroot."""

    def test_download_writes_archive(self, tmp_path):
        """download() should place the archive in dl/."""
        fake = FakeBuildroot(
            {"PKG_SOURCE": "x.tar.zst"}, topdir=tmp_path, archive_content=b"data"
        )
        fake.download(Path("pkg"))

        assert (tmp_path / "dl" / "x.tar.zst").read_bytes() == b"data"
        assert fake.downloads == [Path("pkg")]

    def test_failures(self, tmp_path):
        """Configured failures should raise BuildrootError."""
        fake = FakeBuildroot({}, topdir=tmp_path, fail_download=True, fail_check=True)
        with pytest.raises(BuildrootError):
            fake.download(Path("pkg"))
        with pytest.raises(BuildrootError):
            fake.check(Path("pkg"))
