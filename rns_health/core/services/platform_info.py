"""
Platform detection — what kind of machine the tool is running on.

Read-only probes used by the environment diagnostic: OS name,
architecture, Raspberry Pi model, WSL, SSH session, and whether the
system Python is externally managed (PEP 668).
"""

from __future__ import annotations

import logging
import os
import platform
import re
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_PI_MARKERS = re.compile(r"Raspberry Pi|BCM2|BCM27|BCM28", re.IGNORECASE)


@dataclass(frozen=True)
class PlatformInfo:
    """Snapshot of the host platform."""

    os_name: str = "Unknown"
    os_version: str = "Unknown"
    architecture: str = ""
    is_wsl: bool = False
    is_raspberry_pi: bool = False
    pi_model: str = ""
    is_ssh: bool = False
    pep668: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def _os_release(root: Path) -> tuple[str, str]:
    name, version = "Unknown", "Unknown"
    for line in _read(root / "etc/os-release").splitlines():
        key, _, value = line.partition("=")
        value = value.strip().strip('"')
        if key == "NAME" and value:
            name = value
        elif key == "VERSION_ID" and value:
            version = value
    return name, version


def _pi_model(root: Path) -> str:
    cpuinfo = _read(root / "proc/cpuinfo")
    if not _PI_MARKERS.search(cpuinfo):
        return ""
    model = _read(root / "proc/device-tree/model").replace("\0", "").strip()
    if model:
        return model
    for line in cpuinfo.splitlines():
        if line.startswith("Model"):
            return line.split(":", 1)[1].strip()
    return "Raspberry Pi"


def externally_managed(prefix: str | None = None) -> bool:
    """Whether the Python at ``prefix`` carries an EXTERNALLY-MANAGED marker."""
    base = Path(prefix or sys.base_prefix)
    try:
        return any(True for _ in base.glob("lib/python3*/EXTERNALLY-MANAGED"))
    except OSError:
        return False


def detect_platform(
    root: Path = Path("/"),
    environ: dict[str, str] | None = None,
) -> PlatformInfo:
    """Probe the host. ``root`` lets tests point at a fake filesystem."""
    env = os.environ if environ is None else environ

    name, version = _os_release(root)
    proc_version = _read(root / "proc/version").lower()
    is_wsl = "microsoft" in proc_version or "wsl" in proc_version
    if is_wsl:
        name = f"WSL ({name})" if name != "Unknown" else "WSL"

    model = _pi_model(root)
    info = PlatformInfo(
        os_name=name,
        os_version=version,
        architecture=platform.machine(),
        is_wsl=is_wsl,
        is_raspberry_pi=bool(model),
        pi_model=model,
        is_ssh=any(env.get(k) for k in ("SSH_CLIENT", "SSH_TTY", "SSH_CONNECTION")),
        pep668=externally_managed(),
    )
    logger.debug("Environment detected: %s", info)
    return info
