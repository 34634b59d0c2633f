"""Allow running as ``python -m openwrt_maint``."""

from openwrt_maint.cli import app

app(prog_name="owrt-maint")
