"""OpenWrt maintainer tools - merge pull requests, tag releases, bump packages.

This package provides orchestration around git, the GitHub REST API and the
OpenWrt buildroot for the routine chores of OpenWrt maintainers.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
