"""Release tagging module.

This module handles:
- Pinning feeds.conf.default to fixed feed revisions
- Setting release defaults in version.mk and image-config.in
- Creating the (optionally signed) release tag
"""

from openwrt_maint.tag.feeds import FeedEntry, parse_feed_line, pin_feed, pin_feeds
from openwrt_maint.tag.service import (
    TagError,
    TagOptions,
    TagResult,
    distro_for_branch,
    make_tag,
    parse_version,
)
from openwrt_maint.tag.version_files import rewrite_image_config, rewrite_version_mk

__all__ = [
    "FeedEntry",
    "TagError",
    "TagOptions",
    "TagResult",
    "distro_for_branch",
    "make_tag",
    "parse_feed_line",
    "parse_version",
    "pin_feed",
    "pin_feeds",
    "rewrite_image_config",
    "rewrite_version_mk",
]
