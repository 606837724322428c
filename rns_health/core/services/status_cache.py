"""
Status cache — TTL memoization over running-state and version probes.

The menu redraws far more often than rnsd starts or pip installs
anything, so status reads go through here instead of hitting
``/proc`` and ``pip show`` every time.

Rules:
    - An entry is fresh iff ``now - captured_at < ttl`` AND its value is
      non-empty.  At exactly ``captured_at + ttl`` it is stale.
    - An empty result (None or "") is stored but never fresh, so a
      transient probe failure is retried on the very next read.
    - ``invalidate()`` marks everything stale AND rescans tools.
      Anything that starts/stops a service or installs software must
      call it instead of waiting out the TTL.

Time comes from ``time.monotonic`` so clock adjustments can't make an
entry look fresh forever.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from rns_health.core.models.tools import ToolAvailability
from rns_health.core.services.capability_scan import scan as default_scan

logger = logging.getLogger(__name__)

T = TypeVar("T")

Probe = Callable[[], Any]
Scanner = Callable[[], ToolAvailability]
Clock = Callable[[], float]


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


@dataclass
class CacheEntry(Generic[T]):
    """One cached quantity."""

    value: T | None = None
    captured_at: float = 0.0
    ttl: float = 10.0
    valid: bool = False

    def is_fresh(self, now: float) -> bool:
        if not self.valid or _is_empty(self.value):
            return False
        return now - self.captured_at < self.ttl

    def age(self, now: float) -> float:
        return now - self.captured_at


class StatusCache:
    """Keyed TTL cache with explicit invalidation.

    Args:
        scanner: Capability scanner re-run by ``invalidate()``.
        ttl: Seconds a non-empty value stays fresh (shared by all keys).
        clock: Monotonic time source.
    """

    def __init__(
        self,
        scanner: Scanner = default_scan,
        ttl: float = 10.0,
        clock: Clock = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._scanner = scanner
        self._ttl = ttl
        self._clock = clock
        self._probes: dict[str, Probe] = {}
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()
        self._availability = ToolAvailability()
        self._scanned = False

    def register(self, key: str, probe: Probe) -> None:
        """Attach a zero-arg probe to ``key``. Re-registering replaces it."""
        with self._lock:
            self._probes[key] = probe
            self._entries[key] = CacheEntry(ttl=self._ttl)

    def get(self, key: str) -> Any:
        """Cached value for ``key``, re-probing when stale or empty.

        Raises:
            KeyError: If no probe is registered under ``key``.
        """
        with self._lock:
            probe = self._probes[key]
            entry = self._entries[key]
            now = self._clock()
            if entry.is_fresh(now):
                logger.debug("cache HIT for %s (age %.1fs)", key, entry.age(now))
                return entry.value

            try:
                value = probe()
            except Exception as e:
                logger.warning("Status probe %s failed: %s", key, e)
                value = None

            self._entries[key] = CacheEntry(
                value=value,
                captured_at=self._clock(),
                ttl=self._ttl,
                valid=True,
            )
            logger.debug("cache MISS for %s → %r", key, value)
            return value

    def peek(self, key: str) -> CacheEntry[Any] | None:
        """The current entry for ``key`` without probing."""
        with self._lock:
            return self._entries.get(key)

    def invalidate(self) -> None:
        """Mark every entry stale and rescan tool availability."""
        with self._lock:
            for key in self._entries:
                self._entries[key] = CacheEntry(ttl=self._ttl)
        logger.debug("Status cache invalidated (%d keys)", len(self._entries))
        self.rescan()

    # ── Tool availability ───────────────────────────────────────

    @property
    def availability(self) -> ToolAvailability:
        """Latest scan; performs the first scan lazily."""
        if not self._scanned:
            self.rescan()
        return self._availability

    def rescan(self) -> ToolAvailability:
        """Replace the availability snapshot with a fresh scan."""
        try:
            snapshot = self._scanner()
        except Exception as e:
            logger.warning("Capability scan failed, keeping previous snapshot: %s", e)
            return self._availability
        with self._lock:
            self._availability = snapshot
            self._scanned = True
        return snapshot


# ── Default wiring ──────────────────────────────────────────────

RUNNING_KEYS = ("rnsd", "meshtasticd")
VERSION_KEYS = ("rns", "lxmf", "nomadnet")


def running_key(service: str) -> str:
    return f"running:{service}"


def version_key(package: str) -> str:
    return f"version:{package}"


def build_status_cache(
    checker: Any,
    scanner: Scanner = default_scan,
    ttl: float = 10.0,
    version_probe: Callable[[str], str | None] | None = None,
    clock: Clock = time.monotonic,
) -> StatusCache:
    """StatusCache with the keys the management tool displays.

    Args:
        checker: A ServiceStatusChecker (anything with ``is_running``).
        scanner: Capability scanner for ``invalidate()``.
        ttl: Shared TTL.
        version_probe: ``package → version``; defaults to ``pip show``.
    """
    if version_probe is None:
        from rns_health.core.services.versions import get_installed_version
        version_probe = get_installed_version

    cache = StatusCache(scanner=scanner, ttl=ttl, clock=clock)
    for service in RUNNING_KEYS:
        cache.register(running_key(service), lambda s=service: checker.is_running(s))
    for package in VERSION_KEYS:
        cache.register(version_key(package), lambda p=package: version_probe(p))
    return cache
