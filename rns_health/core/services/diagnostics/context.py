"""
Diagnostic context — everything a step may read, in one place.

Steps never reach for globals: the cache, the status checker, the
settings and every OS probe come in through this object, so a test
can hand the pipeline a fully synthetic system.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from rns_health.core.config.loader import HealthSettings
from rns_health.core.context import get_home
from rns_health.core.models.tools import ToolAvailability
from rns_health.core.services import meshtasticd_api, system_probes
from rns_health.core.services.capability_scan import scan, specs_for
from rns_health.core.services.platform_info import PlatformInfo, detect_platform
from rns_health.core.services.process_table import process_uptime
from rns_health.core.services.service_status import ServiceStatusChecker
from rns_health.core.services.status_cache import StatusCache, build_status_cache
from rns_health.core.services.versions import get_tool_version


@dataclass
class DiagnosticContext:
    """Inputs for one diagnostic run."""

    cache: StatusCache
    checker: ServiceStatusChecker
    settings: HealthSettings = field(default_factory=HealthSettings)
    home: Path = field(default_factory=get_home)

    # ── OS probes (overridable) ─────────────────────────────────
    platform: Callable[[], PlatformInfo] = detect_platform
    python_version: Callable[[], str | None] = lambda: get_tool_version("python3")
    interfaces: Callable[[], list[str]] = system_probes.active_interfaces
    serial_devices: Callable[[], list[str]] = system_probes.serial_devices
    groups: Callable[[], set[str]] = system_probes.user_groups
    rnstatus: Callable[[], list[str]] = system_probes.rnstatus_excerpt
    uptime: Callable[[int], float | None] = process_uptime
    meshtasticd_api: Callable[[], str | None] | None = None

    @property
    def availability(self) -> ToolAvailability:
        """Tool snapshot from the most recent scan."""
        return self.cache.availability

    @property
    def reticulum_config(self) -> Path:
        return self.settings.resolve_path(self.settings.reticulum_config, self.home)

    @property
    def meshtasticd_config(self) -> Path:
        return self.settings.resolve_path(self.settings.meshtasticd_config, self.home)

    def probe_meshtasticd_api(self) -> str | None:
        if self.meshtasticd_api is not None:
            return self.meshtasticd_api()
        return meshtasticd_api.probe_http_api(
            self.meshtasticd_config,
            tuple(self.settings.meshtasticd_http_ports),
            timeout=min(3.0, self.settings.probe_timeout_seconds),
        )


def build_context(
    settings: HealthSettings | None = None,
    home: Path | None = None,
    checker: ServiceStatusChecker | None = None,
    cache: StatusCache | None = None,
) -> DiagnosticContext:
    """Context wired to the real system."""
    settings = settings or HealthSettings()
    home = home if home is not None else get_home()
    checker = checker or ServiceStatusChecker()
    if cache is None:
        specs = specs_for(settings)
        cache = build_status_cache(
            checker,
            scanner=lambda: scan(specs),
            ttl=settings.cache_ttl_seconds,
        )
    return DiagnosticContext(cache=cache, checker=checker, settings=settings, home=home)
