"""
Service status — single source of truth for "is it running".

Every service is tagged with a ServiceKind that picks its detection
strategy.  Call sites never invent their own matching rules; they ask
``ServiceStatusChecker.is_running(name)``.

Command-line substring matching (``pgrep -f rnsd``) is never used: it
matches an editor open on ``~/.config/rnsd.conf``, a ``grep rnsd``,
and the management tool itself.

No caching here.  Redraw-frequency readers go through StatusCache;
transition polling calls this directly.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, Iterable

from rns_health.core.models.service import ProcessInfo, ServiceKind, ServiceSpec
from rns_health.core.services.process_table import read_process_table
from rns_health.core.services.service_manager import SystemdManager

logger = logging.getLogger(__name__)

ProcessSource = Callable[[], Iterable[ProcessInfo]]

# ── Known services ──────────────────────────────────────────────

SERVICES: dict[str, ServiceSpec] = {
    "rnsd": ServiceSpec(
        name="rnsd",
        kind=ServiceKind.PROCESS_EXACT,
        unit="rnsd.service",
        user_unit=True,
    ),
    "nomadnet": ServiceSpec(name="nomadnet", kind=ServiceKind.PROCESS_EXACT),
    "meshchat": ServiceSpec(
        name="meshchat",
        kind=ServiceKind.PROCESS_PATTERN_FALLBACK,
        patterns=(
            # node /home/pi/reticulum-meshchat/meshchat.js ...
            r"(?:\S*/)?node(?:js)?\s+\S*reticulum-meshchat\S*",
            # npm run start inside the checkout spawns electron
            r"(?:\S*/)?electron\s+\S*reticulum-meshchat\S*",
        ),
    ),
    "meshtasticd": ServiceSpec(
        name="meshtasticd",
        kind=ServiceKind.SERVICE_MANAGER,
        unit="meshtasticd",
    ),
}


def _exec_name(proc: ProcessInfo) -> str:
    """Best executable name for a row: comm, else argv[0] basename."""
    if proc.name:
        return proc.name
    if proc.args:
        return os.path.basename(proc.args[0])
    return ""


def _matches_exact(proc: ProcessInfo, name: str) -> bool:
    if _exec_name(proc) == name:
        return True
    # comm is truncated to 15 chars by the kernel
    if len(name) > 15 and proc.name == name[:15] and proc.args:
        return os.path.basename(proc.args[0]) == name
    # Python entry points show up as "python3 -u /usr/local/bin/rnsd --daemon"
    if proc.name.startswith("python"):
        script = _python_script(proc.args)
        return script is not None and os.path.basename(script) == name
    return False


# interpreter options that consume the next argument
_PYTHON_VALUE_OPTIONS = frozenset({"-W", "-X", "--check-hash-based-pycs"})


def _python_script(args: tuple[str, ...]) -> str | None:
    """The script a python command line runs, or None for -m/-c/-."""
    rest = iter(args[1:])
    for arg in rest:
        if arg == "-" or arg.startswith(("-m", "-c")):
            return None
        if arg in _PYTHON_VALUE_OPTIONS:
            next(rest, None)
            continue
        if arg.startswith("-"):
            continue
        return arg
    return None


class ServiceStatusChecker:
    """Polymorphic running-state probe.

    Args:
        processes: Zero-arg callable returning the current process table.
        manager: Service manager used by SERVICE_MANAGER services.
        services: Name → spec registry (defaults to ``SERVICES``).
    """

    def __init__(
        self,
        processes: ProcessSource = read_process_table,
        manager: SystemdManager | None = None,
        services: dict[str, ServiceSpec] | None = None,
    ):
        self._processes = processes
        self._manager = manager if manager is not None else SystemdManager()
        self._services = services if services is not None else SERVICES

    @property
    def manager(self) -> SystemdManager:
        return self._manager

    def spec(self, name: str) -> ServiceSpec:
        return self._services.get(name) or ServiceSpec(name=name, kind=ServiceKind.GENERIC)

    def is_running(self, name: str) -> bool:
        """Whether the named service is running right now."""
        spec = self.spec(name)

        if spec.kind == ServiceKind.SERVICE_MANAGER:
            running = self._check_manager(spec)
        elif spec.kind == ServiceKind.PROCESS_PATTERN_FALLBACK:
            running = self._check_pattern_fallback(spec)
        else:
            # PROCESS_EXACT and GENERIC share exact matching
            running = self._find_exact(spec.executable) is not None

        logger.debug("is_running(%s) [%s] → %s", name, spec.kind.value, running)
        return running

    def find_pid(self, name: str) -> int | None:
        """PID of the service's process, if one is visible."""
        spec = self.spec(name)
        proc = self._find_exact(spec.executable)
        if proc is None and spec.kind == ServiceKind.PROCESS_PATTERN_FALLBACK:
            proc = self._find_pattern(spec.patterns)
        return proc.pid if proc else None

    # ── Strategies ──────────────────────────────────────────────

    def _snapshot(self) -> list[ProcessInfo]:
        try:
            return list(self._processes())
        except Exception as e:
            logger.warning("Cannot read process table: %s", e)
            return []

    def _find_exact(self, executable: str) -> ProcessInfo | None:
        for proc in self._snapshot():
            if _matches_exact(proc, executable):
                return proc
        return None

    def _find_pattern(self, patterns: tuple[str, ...]) -> ProcessInfo | None:
        compiled = [re.compile(p) for p in patterns]
        for proc in self._snapshot():
            if any(rx.match(proc.cmdline) for rx in compiled):
                return proc
        return None

    def _check_pattern_fallback(self, spec: ServiceSpec) -> bool:
        if self._find_exact(spec.executable) is not None:
            return True
        return self._find_pattern(spec.patterns) is not None

    def _check_manager(self, spec: ServiceSpec) -> bool:
        active = self._manager.is_active(spec.unit or spec.name, user=spec.user_unit)
        if active is not None:
            return active
        logger.debug("Service manager unreachable for %s, inspecting processes", spec.name)
        return self._find_exact(spec.executable) is not None

    # ── Autostart ───────────────────────────────────────────────

    def autostart_enabled(self, name: str) -> bool | None:
        """Whether the service's unit is enabled at boot; None if unknown."""
        spec = self.spec(name)
        if not spec.unit:
            return None
        return self._manager.is_enabled(spec.unit, user=spec.user_unit)
