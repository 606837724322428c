"""
Capability scan — which RNS tools and dependencies are installed.

Run once at startup and again after anything that installs or removes
software.  The resulting snapshot drives menu enable/disable without
repeating ``which`` lookups on every redraw.

Presence only: no version parsing, no execution of the tools.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from rns_health.core.context import get_home
from rns_health.core.models.tools import ToolAvailability, ToolSpec

logger = logging.getLogger(__name__)

Which = Callable[[str], Optional[str]]

# ── Tools to probe ──────────────────────────────────────────────

DOMAIN_TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(id="rnsd", label="rnsd", domain=True, description="daemon"),
    ToolSpec(id="rnstatus", label="rnstatus", domain=True, description="network status"),
    ToolSpec(id="rnpath", label="rnpath", domain=True, description="path table"),
    ToolSpec(id="rnprobe", label="rnprobe", domain=True, description="connectivity probe"),
    ToolSpec(id="rncp", label="rncp", domain=True, description="file transfer"),
    ToolSpec(id="rnx", label="rnx", domain=True, description="remote execution"),
    ToolSpec(id="rnid", label="rnid", domain=True, description="identity management"),
    ToolSpec(id="rnodeconf", label="rnodeconf", domain=True, description="RNODE configuration"),
)

SUPPORT_TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(id="python3", label="Python 3"),
    ToolSpec(id="pip", label="pip", candidates=("pip3", "pip")),
    ToolSpec(id="git", label="Git"),
    ToolSpec(id="node", label="Node.js", candidates=("node", "nodejs")),
    ToolSpec(id="nomadnet", label="NomadNet"),
    ToolSpec(
        id="meshchat",
        label="MeshChat",
        candidates=("meshchat",),
        directories=("~/reticulum-meshchat",),
    ),
    ToolSpec(id="meshtasticd", label="meshtasticd"),
)

TOOLS: tuple[ToolSpec, ...] = DOMAIN_TOOLS + SUPPORT_TOOLS

DOMAIN_TOOL_IDS: tuple[str, ...] = tuple(t.id for t in DOMAIN_TOOLS)


def _resolve_dir(raw: str, home: Path) -> Path:
    return home / raw[2:] if raw.startswith("~/") else Path(raw)


def _probe(spec: ToolSpec, which: Which, home: Path) -> bool:
    """Presence check for one tool. Any probe error counts as absent."""
    try:
        for cli in spec.executables():
            if which(cli):
                return True
        for raw in spec.directories:
            if _resolve_dir(raw, home).is_dir():
                return True
    except Exception as e:
        logger.debug("Probe for %s failed, treating as absent: %s", spec.id, e)
    return False


def scan(
    specs: tuple[ToolSpec, ...] = TOOLS,
    which: Which = shutil.which,
    home: Path | None = None,
) -> ToolAvailability:
    """Probe every tool in ``specs`` and return a fresh snapshot.

    Idempotent and side-effect free; never raises.
    """
    base = home if home is not None else get_home()
    found = {spec.id: _probe(spec, which, base) for spec in specs}
    availability = ToolAvailability(tools=found)

    domain_ids = [s.id for s in specs if s.domain]
    logger.info(
        "Tools detected: RNS=%d/%d (%s)",
        availability.count(domain_ids),
        len(domain_ids),
        " ".join(f"{t}={found[t]}" for t in domain_ids),
    )
    logger.debug(
        "Dependencies: %s",
        " ".join(f"{s.id}={found[s.id]}" for s in specs if not s.domain),
    )
    return availability


def tool_spec(tool_id: str) -> ToolSpec | None:
    """Look up a tool in the fixed list."""
    for spec in TOOLS:
        if spec.id == tool_id:
            return spec
    return None


def specs_for(settings) -> tuple[ToolSpec, ...]:
    """Tool list with checkout directories taken from HealthSettings."""
    return tuple(
        spec.model_copy(update={"directories": (settings.meshchat_dir,)})
        if spec.id == "meshchat" else spec
        for spec in TOOLS
    )
