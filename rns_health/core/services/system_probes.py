"""
System probes — network interfaces, serial devices, group membership.

Read-only.  Each function returns an empty result when the thing it
looks for can't be determined; the network diagnostic decides what an
empty result means.
"""

from __future__ import annotations

import grp
import logging
import os
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_SERIAL_GLOBS = ("ttyUSB*", "ttyACM*")


def active_interfaces(timeout: float = 5.0) -> list[str]:
    """Non-loopback interfaces that are UP, as ``ip -br addr`` lines.

    Falls back to ``/sys/class/net/*/operstate`` without ``ip``.
    """
    if shutil.which("ip"):
        try:
            r = subprocess.run(
                ["ip", "-br", "addr"],
                capture_output=True, text=True, timeout=timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("ip -br addr failed: %s", e)
        else:
            return [
                " ".join(line.split())
                for line in r.stdout.splitlines()
                if line.strip() and not line.startswith("lo") and "UP" in line.split()[1:2]
            ]

    up: list[str] = []
    net = Path("/sys/class/net")
    try:
        entries = sorted(net.iterdir())
    except OSError:
        return up
    for iface in entries:
        if iface.name == "lo":
            continue
        try:
            state = (iface / "operstate").read_text().strip()
        except OSError:
            continue
        if state == "up":
            up.append(f"{iface.name} UP")
    return up


def serial_devices(dev: Path = Path("/dev")) -> list[str]:
    """USB serial devices an RNODE would appear as."""
    found: list[str] = []
    for pattern in _SERIAL_GLOBS:
        try:
            found.extend(str(p) for p in dev.glob(pattern))
        except OSError:
            continue
    return sorted(found)


def user_groups() -> set[str]:
    """Group names of the current process."""
    names: set[str] = set()
    for gid in os.getgroups():
        try:
            names.add(grp.getgrgid(gid).gr_name)
        except KeyError:
            continue
    return names


def rnstatus_excerpt(max_lines: int = 25, timeout: float = 10.0) -> list[str]:
    """First lines of ``rnstatus`` output, or [] if it can't run."""
    if not shutil.which("rnstatus"):
        return []
    try:
        r = subprocess.run(["rnstatus"], capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("rnstatus failed: %s", e)
        return []
    output = (r.stdout or r.stderr or "").splitlines()
    return output[:max_lines]
