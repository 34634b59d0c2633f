"""Git-source package update module.

This module handles:
- Locating package Makefiles and the buildroot top directory
- Collecting the upstream short log and Fixes: references
- Rewriting, re-hashing and committing the package Makefile
"""

from openwrt_maint.source_update.buildroot import (
    Buildroot,
    BuildrootError,
    FakeBuildroot,
    MakeBuildroot,
)
from openwrt_maint.source_update.fixes import (
    collect_fixes,
    extract_fix_references,
    format_fixes,
    resolve_issue_url,
)
from openwrt_maint.source_update.makefile import (
    SourceUpdateError,
    find_topdir,
    resolve_makefile,
    rewrite_makefile,
    validate_source,
)
from openwrt_maint.source_update.service import PackageUpdateResult, update_package

__all__ = [
    "Buildroot",
    "BuildrootError",
    "FakeBuildroot",
    "MakeBuildroot",
    "PackageUpdateResult",
    "SourceUpdateError",
    "collect_fixes",
    "extract_fix_references",
    "find_topdir",
    "format_fixes",
    "resolve_issue_url",
    "resolve_makefile",
    "rewrite_makefile",
    "update_package",
    "validate_source",
]
