"""
Status use case — what the main menu header shows.

Reads through the status cache: tool availability, which services
are running, installed versions, rnsd uptime and autostart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rns_health.core.services.capability_scan import DOMAIN_TOOL_IDS
from rns_health.core.services.process_table import format_uptime, process_uptime
from rns_health.core.services.service_status import ServiceStatusChecker
from rns_health.core.services.status_cache import (
    RUNNING_KEYS,
    VERSION_KEYS,
    StatusCache,
    running_key,
    version_key,
)


@dataclass
class StatusSnapshot:
    """Aggregated operational status."""

    tools: dict[str, bool] = field(default_factory=dict)
    running: dict[str, bool] = field(default_factory=dict)
    versions: dict[str, str | None] = field(default_factory=dict)
    rnsd_pid: int | None = None
    rnsd_uptime: str | None = None
    rnsd_autostart: bool | None = None

    # Summary counts
    domain_tools_found: int = 0
    domain_tools_total: int = len(DOMAIN_TOOL_IDS)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "tools": dict(self.tools),
            "domain_tools": {
                "found": self.domain_tools_found,
                "total": self.domain_tools_total,
            },
            "running": dict(self.running),
            "versions": dict(self.versions),
            "rnsd": {
                "pid": self.rnsd_pid,
                "uptime": self.rnsd_uptime,
                "autostart": self.rnsd_autostart,
            },
        }


def get_status(
    cache: StatusCache,
    checker: ServiceStatusChecker,
    uptime=process_uptime,
) -> StatusSnapshot:
    """Build a snapshot, probing only what the cache considers stale."""
    availability = cache.availability
    snap = StatusSnapshot(
        tools=dict(availability.tools),
        domain_tools_found=availability.count(DOMAIN_TOOL_IDS),
    )

    for service in RUNNING_KEYS:
        snap.running[service] = bool(cache.get(running_key(service)))
    for package in VERSION_KEYS:
        snap.versions[package] = cache.get(version_key(package)) or None

    if snap.running.get("rnsd"):
        snap.rnsd_pid = checker.find_pid("rnsd")
        if snap.rnsd_pid is not None:
            seconds = uptime(snap.rnsd_pid)
            snap.rnsd_uptime = format_uptime(seconds) if seconds is not None else None
    snap.rnsd_autostart = checker.autostart_enabled("rnsd")

    return snap
