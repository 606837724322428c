"""
Version probes — installed package and tool versions.

Read-only: ``pip show`` for the Python packages of the RNS suite and
``--version`` for standalone binaries.  Every probe returns None when
the thing is not installed or the output can't be parsed; a missing
version is an expected state, not an error.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess

logger = logging.getLogger(__name__)

# pip distribution names for the Python-packaged components
PIP_PACKAGES: dict[str, str] = {
    "rns": "rns",
    "lxmf": "lxmf",
    "nomadnet": "nomadnet",
}

VERSION_COMMANDS: dict[str, tuple[list[str], str]] = {
    "rnodeconf":   (["rnodeconf", "--version"],   r"(\d+\.\d+\.\d+)"),
    "meshtasticd": (["meshtasticd", "--version"], r"v?(\d+\.\d+\.\d+(?:\.\w+)?)"),
    "python3":     (["python3", "--version"],     r"Python\s+(\d+\.\d+\.\d+)"),
    "node":        (["node", "--version"],        r"v(\d+\.\d+\.\d+)"),
    "git":         (["git", "--version"],         r"git version\s+(\d+\.\d+\.\d+)"),
}

_PIP_VERSION_RE = re.compile(r"^Version:\s*(\S+)", re.MULTILINE)


def pip_command() -> list[str] | None:
    """The pip invocation the installer uses: pip3, pip, or python3 -m pip."""
    for cli in ("pip3", "pip"):
        if shutil.which(cli):
            return [cli]
    if shutil.which("python3"):
        return ["python3", "-m", "pip"]
    return None


def get_installed_version(package: str, timeout: float = 10.0) -> str | None:
    """Installed version of a pip package (``pip show``), or None."""
    pip = pip_command()
    if pip is None:
        return None

    dist = PIP_PACKAGES.get(package, package)
    try:
        r = subprocess.run(
            pip + ["show", dist],
            capture_output=True, text=True, timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("pip show %s failed: %s", dist, e)
        return None

    if r.returncode != 0:
        return None
    match = _PIP_VERSION_RE.search(r.stdout)
    return match.group(1) if match else None


def get_tool_version(tool: str, timeout: float = 10.0) -> str | None:
    """Version of a standalone tool from its ``--version`` output, or None."""
    entry = VERSION_COMMANDS.get(tool)
    if not entry:
        return None

    cmd, pattern = entry
    if not shutil.which(cmd[0]):
        return None

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("%s failed: %s", " ".join(cmd), e)
        return None

    # Some tools print their version to stderr
    output = (result.stdout or "") + (result.stderr or "")
    match = re.search(pattern, output)
    return match.group(1) if match else None
