"""
Service manager probe — systemd unit state, read-only.

``is_active`` / ``is_enabled`` answer True or False when systemd gave
an answer, and None when it could not be asked at all (no systemctl,
no bus, timeout, unknown unit).  None is what lets the status checker
fall back to process inspection without second-guessing a real answer.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

logger = logging.getLogger(__name__)

# systemctl exit code for "no such unit" (systemd >= 246)
_RC_UNIT_NOT_FOUND = 4

_UNREACHABLE_MARKERS = (
    "failed to connect to bus",
    "system has not been booted with systemd",
)


class SystemdManager:
    """Thin wrapper around ``systemctl`` queries.

    Args:
        timeout: Seconds allowed for each systemctl call.
        systemctl: Executable name or path.
    """

    def __init__(self, timeout: float = 5.0, systemctl: str = "systemctl"):
        self.timeout = timeout
        self.systemctl = systemctl

    def available(self) -> bool:
        return shutil.which(self.systemctl) is not None

    def _query(self, verb: str, unit: str, user: bool) -> tuple[int, str] | None:
        if not self.available():
            return None

        cmd = [self.systemctl]
        if user:
            cmd.append("--user")
        cmd.extend([verb, unit])

        try:
            r = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.debug("systemctl %s %s timed out after %.0fs", verb, unit, self.timeout)
            return None
        except OSError as e:
            logger.debug("systemctl %s %s failed: %s", verb, unit, e)
            return None

        stderr = r.stderr.lower()
        if any(marker in stderr for marker in _UNREACHABLE_MARKERS):
            logger.debug("systemd unreachable for %s: %s", unit, r.stderr.strip())
            return None
        if r.returncode == _RC_UNIT_NOT_FOUND:
            logger.debug("systemd does not know unit %s", unit)
            return None

        return r.returncode, r.stdout.strip()

    def is_active(self, unit: str, user: bool = False) -> bool | None:
        """``systemctl [--user] is-active <unit>``."""
        answer = self._query("is-active", unit, user)
        if answer is None:
            return None
        rc, state = answer
        # Older systemd exits 3 for unknown units but prints "unknown"
        if state == "unknown":
            return None
        return rc == 0 and state == "active"

    def is_enabled(self, unit: str, user: bool = False) -> bool | None:
        """``systemctl [--user] is-enabled <unit>`` — autostart at boot."""
        answer = self._query("is-enabled", unit, user)
        if answer is None:
            return None
        rc, state = answer
        return rc == 0 and state in ("enabled", "enabled-runtime", "static", "alias")
