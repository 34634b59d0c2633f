"""Tests for source_update/service.py module.

An upstream repository is cloned over file:// and make is replaced by
FakeBuildroot, so only git is required.
"""

import hashlib
from pathlib import Path

import pytest
from conftest import commit_file, git, init_repo, requires_git

from openwrt_maint.source_update import (
    FakeBuildroot,
    SourceUpdateError,
    update_package,
)
from openwrt_maint.source_update.service import compute_file_sha256

ARCHIVE = b"netifd source archive"
OLD_HASH = "0" * 64

MAKEFILE_TEMPLATE = """\
include $(TOPDIR)/rules.mk

PKG_NAME:=netifd
PKG_RELEASE:=3

PKG_SOURCE_PROTO:=git
PKG_SOURCE_URL={url}
PKG_SOURCE_DATE:=2023-01-01
PKG_SOURCE_VERSION:={version}
PKG_MIRROR_HASH:={mirror_hash}

include $(INCLUDE_DIR)/package.mk

$(eval $(call BuildPackage,netifd))
"""


class TestComputeFileSha256:
    """Tests for compute_file_sha256 function."""

    def test_small_chunks(self, tmp_path):
        """Chunked hashing should match hashlib."""
        path = tmp_path / "blob"
        path.write_bytes(b"x" * 1000)
        assert compute_file_sha256(path, chunk_size=7) == (
            hashlib.sha256(b"x" * 1000).hexdigest()
        )


@requires_git
@pytest.mark.usefixtures("git_env")
class TestUpdatePackage:
    """Tests for update_package against local repositories."""

    @pytest.fixture
    def upstream(self, tmp_path, monkeypatch) -> dict:
        monkeypatch.setenv("GIT_COMMITTER_DATE", "2024-03-01T12:00:00")
        repo = init_repo(tmp_path / "upstream")
        old = commit_file(repo, "main.c", "v1\n", "initial import")
        commit_file(repo, "main.c", "v2\n", "fix crash on reload\n\nFixes: GH#99")
        new = commit_file(
            repo, "main.c", "v3\n", "add wireless hooks\n\nFixes: FS#12, GH#7"
        )
        return {"path": repo, "old": old, "new": new, "url": f"file://{repo}"}

    @pytest.fixture
    def topdir(self, tmp_path, upstream) -> Path:
        topdir = init_repo(tmp_path / "openwrt")
        (topdir / "rules.mk").write_text("# rules\n")
        (topdir / ".gitignore").write_text("/dl\n")
        makefile = topdir / "package/network/config/netifd/Makefile"
        makefile.parent.mkdir(parents=True)
        makefile.write_text(
            MAKEFILE_TEMPLATE.format(
                url=upstream["url"], version=upstream["old"], mirror_hash=OLD_HASH
            )
        )
        git(topdir, "add", ".")
        git(topdir, "commit", "-q", "-m", "initial")
        return topdir

    def make_buildroot(self, topdir, upstream, **overrides) -> FakeBuildroot:
        variables = {
            "PKG_NAME": "netifd",
            "PKG_RELEASE": "3",
            "PKG_SOURCE_PROTO": "git",
            "PKG_SOURCE_URL": upstream["url"],
            "PKG_SOURCE_DATE": "2023-01-01",
            "PKG_SOURCE_VERSION": upstream["old"],
            "PKG_MIRROR_HASH": OLD_HASH,
            "PKG_SOURCE": "netifd-2024-03-01.tar.zst",
        }
        variables.update(overrides.pop("variables", {}))
        return FakeBuildroot(
            variables, topdir=topdir, archive_content=ARCHIVE, **overrides
        )

    def makefile(self, topdir) -> Path:
        return topdir / "package/network/config/netifd/Makefile"

    def test_updates_makefile(self, topdir, upstream):
        """The Makefile should point at the new revision."""
        buildroot = self.make_buildroot(topdir, upstream)
        result = update_package(
            str(self.makefile(topdir)), topdir=topdir, buildroot=buildroot
        )

        text = self.makefile(topdir).read_text()
        expected_hash = hashlib.sha256(ARCHIVE).hexdigest()
        assert f"PKG_SOURCE_VERSION:={upstream['new']}\n" in text
        assert "PKG_SOURCE_DATE:=2024-03-01\n" in text
        assert "PKG_RELEASE:=1\n" in text
        assert f"PKG_MIRROR_HASH:={expected_hash}\n" in text
        assert result.old_version == upstream["old"]
        assert result.new_version == upstream["new"]
        assert result.source_date == "2024-03-01"
        assert result.mirror_hash == expected_hash

    def test_commit_message(self, topdir, upstream):
        """The commit should list the upstream changes and fixed issues."""
        buildroot = self.make_buildroot(topdir, upstream)
        result = update_package("netifd", topdir=topdir, buildroot=buildroot)

        subject = git(topdir, "log", "-1", "--format=%s")
        body = git(topdir, "log", "-1", "--format=%b")
        assert subject == "netifd: update to Git HEAD (2024-03-01)"
        assert result.subject == subject
        assert body.index("fix crash on reload") < body.index("add wireless hooks")
        assert "Fixes: https://bugs.openwrt.org/?task_id=12" in body
        assert "Fixes: https://github.com/openwrt/openwrt/issues/7" in body
        assert "Fixes: https://github.com/openwrt/openwrt/issues/99" in body
        assert "Signed-off-by: Test Maintainer" in body
        assert result.fixes == [
            "Fixes: https://bugs.openwrt.org/?task_id=12",
            "Fixes: https://github.com/openwrt/openwrt/issues/7",
            "Fixes: https://github.com/openwrt/openwrt/issues/99",
        ]
        assert git(topdir, "status", "--porcelain") == ""

    def test_shortlog_abbreviated(self, topdir, upstream):
        """The short log should use 12 character commit ids."""
        buildroot = self.make_buildroot(topdir, upstream)
        result = update_package("netifd", topdir=topdir, buildroot=buildroot)

        lines = result.shortlog.splitlines()
        assert len(lines) == 2
        assert lines[1] == f"{upstream['new'][:12]} add wireless hooks"

    def test_runs_download_and_check(self, topdir, upstream):
        """Sources should be downloaded and the package checked."""
        buildroot = self.make_buildroot(topdir, upstream)
        update_package("netifd", topdir=topdir, buildroot=buildroot)

        package_dir = self.makefile(topdir).parent
        assert buildroot.downloads == [package_dir]
        assert buildroot.checks == [package_dir]

    def test_explicit_revision(self, topdir, upstream):
        """An older revision should be honoured."""
        middle = git(upstream["path"], "rev-parse", "HEAD~1")
        buildroot = self.make_buildroot(topdir, upstream)
        result = update_package(
            "netifd", revision=middle, topdir=topdir, buildroot=buildroot
        )

        assert result.new_version == middle
        assert result.fixes == ["Fixes: https://github.com/openwrt/openwrt/issues/99"]

    def test_download_failure_restores_makefile(self, topdir, upstream):
        """A failed download should leave the Makefile untouched."""
        original = self.makefile(topdir).read_text()
        head = git(topdir, "rev-parse", "HEAD")
        buildroot = self.make_buildroot(topdir, upstream, fail_download=True)

        with pytest.raises(SourceUpdateError) as exc_info:
            update_package("netifd", topdir=topdir, buildroot=buildroot)

        assert exc_info.value.code == "download_failed"
        assert self.makefile(topdir).read_text() == original
        assert git(topdir, "rev-parse", "HEAD") == head

    def test_unknown_revision(self, topdir, upstream):
        """An unknown revision should fail before the Makefile changes."""
        original = self.makefile(topdir).read_text()
        buildroot = self.make_buildroot(topdir, upstream)

        with pytest.raises(SourceUpdateError) as exc_info:
            update_package(
                "netifd", revision="no-such-ref", topdir=topdir, buildroot=buildroot
            )

        assert exc_info.value.code == "git_error"
        assert self.makefile(topdir).read_text() == original
        assert buildroot.downloads == []

    def test_check_failure_keeps_commit(self, topdir, upstream):
        """A failing package check is reported after committing."""
        head = git(topdir, "rev-parse", "HEAD")
        buildroot = self.make_buildroot(topdir, upstream, fail_check=True)

        with pytest.raises(SourceUpdateError) as exc_info:
            update_package("netifd", topdir=topdir, buildroot=buildroot)

        assert exc_info.value.code == "check_failed"
        assert git(topdir, "rev-parse", "HEAD~1") == head

    def test_unsupported_source(self, topdir, upstream):
        """Non-git sources should be rejected before cloning."""
        buildroot = self.make_buildroot(
            topdir, upstream, variables={"PKG_SOURCE_PROTO": "svn"}
        )

        with pytest.raises(SourceUpdateError) as exc_info:
            update_package("netifd", topdir=topdir, buildroot=buildroot)

        assert exc_info.value.code == "unsupported_source"
        assert buildroot.downloads == []

    def test_not_package_makefile(self, tmp_path):
        """Non-package Makefiles should be rejected."""
        path = tmp_path / "Makefile"
        path.write_text("all:\n\ttrue\n")

        with pytest.raises(SourceUpdateError) as exc_info:
            update_package(str(path), topdir=tmp_path)

        assert exc_info.value.code == "not_package_makefile"
