"""
Process table — read-only snapshot of running processes.

Linux reads ``/proc`` directly; other platforms fall back to ``ps``.
Both return the same ProcessInfo rows so the status checker never
needs to know which source was used.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from rns_health.core.models.service import ProcessInfo

logger = logging.getLogger(__name__)

_PROC = Path("/proc")


def _read_proc_entry(pid_dir: Path) -> ProcessInfo | None:
    """Read one /proc/<pid> entry. Returns None if it vanished or is unreadable."""
    try:
        comm = (pid_dir / "comm").read_text(encoding="utf-8", errors="replace").strip()
        raw = (pid_dir / "cmdline").read_bytes()
    except OSError:
        return None

    args = tuple(a.decode("utf-8", errors="replace") for a in raw.split(b"\0") if a)
    return ProcessInfo(
        pid=int(pid_dir.name),
        name=comm,
        cmdline=" ".join(args),
        args=args,
    )


def _read_proc(root: Path) -> list[ProcessInfo]:
    rows: list[ProcessInfo] = []
    for entry in root.iterdir():
        if not entry.name.isdigit():
            continue
        info = _read_proc_entry(entry)
        if info is not None:
            rows.append(info)
    return rows


def _read_ps(timeout: float) -> list[ProcessInfo]:
    if not shutil.which("ps"):
        return []
    try:
        r = subprocess.run(
            ["ps", "-eo", "pid=,comm=,args="],
            capture_output=True, text=True, timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("ps failed: %s", e)
        return []

    rows: list[ProcessInfo] = []
    for line in r.stdout.splitlines():
        parts = line.split(None, 2)
        if len(parts) < 2 or not parts[0].isdigit():
            continue
        cmdline = parts[2] if len(parts) > 2 else ""
        rows.append(ProcessInfo(
            pid=int(parts[0]),
            name=os.path.basename(parts[1]),
            cmdline=cmdline,
            args=tuple(cmdline.split()),
        ))
    return rows


def read_process_table(timeout: float = 5.0) -> list[ProcessInfo]:
    """Snapshot the process table. Empty list if it cannot be read."""
    if _PROC.is_dir():
        try:
            return _read_proc(_PROC)
        except OSError as e:
            logger.debug("Cannot list /proc, falling back to ps: %s", e)
    return _read_ps(timeout)


def process_uptime(pid: int) -> float | None:
    """Seconds since the process started, from the /proc entry's mtime."""
    try:
        started = (_PROC / str(pid)).stat().st_mtime
    except OSError:
        return None
    return max(0.0, time.time() - started)


def format_uptime(seconds: float) -> str:
    """Compact uptime: ``42s``, ``17m``, ``3h 5m``, ``2d 4h``."""
    secs = int(seconds)
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m"
    if secs < 86400:
        return f"{secs // 3600}h {secs % 3600 // 60}m"
    return f"{secs // 86400}d {secs % 86400 // 3600}h"
