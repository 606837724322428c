"""
meshtasticd HTTP API probe and webserver-config check.

meshtasticd serves its web UI/API on whatever port the ``Webserver:``
section of its config names, usually 443.  The probe tries the
configured port first, then the common defaults, against localhost
only.  Self-signed certificates are expected, so TLS verification is
off for this loopback probe.
"""

from __future__ import annotations

import logging
import re
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PORTS: tuple[int, ...] = (443, 9443, 80, 4403)

# Codes that prove something meshtasticd-shaped is listening
_ALIVE_CODES = {200, 204, 400, 404, 405}

_PORT_RE = re.compile(r"^\s*Port:\s*(\d+)", re.MULTILINE)


@dataclass(frozen=True)
class ConfigCheck:
    """Result of the webserver config check."""

    ok: bool
    hint: str


def configured_port(config_path: Path) -> int | None:
    """Port from the ``Webserver:`` section, if readable."""
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError:
        return None

    lines = text.splitlines()
    for i, line in enumerate(lines):
        if line.strip().startswith("Webserver:"):
            section = "\n".join(lines[i + 1:i + 3])
            match = _PORT_RE.search(section)
            return int(match.group(1)) if match else None
    return None


def check_webserver_config(config_path: Path) -> ConfigCheck:
    """Does meshtasticd's config enable the webserver?"""
    if not config_path.exists():
        return ConfigCheck(False, f"Fix: {config_path} not found")

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError:
        return ConfigCheck(False, "Cannot read config (try running with sudo)")

    lines = [ln for ln in text.splitlines() if "Webserver:" in ln]
    if not lines:
        return ConfigCheck(False, f"Fix: Add 'Webserver:' section with 'Port: 443' to {config_path}")
    if all(ln.lstrip().startswith("#") for ln in lines):
        return ConfigCheck(False, f"Fix: Webserver section is commented out in {config_path}")

    return ConfigCheck(True, "Config has Webserver section — check meshtasticd logs if API unreachable")


def _candidate_ports(config_path: Path | None, ports: tuple[int, ...]) -> list[int]:
    first = configured_port(config_path) if config_path else None
    ordered = [first] if first else []
    ordered.extend(p for p in ports if p != first)
    return ordered


def _get(url: str, timeout: float, accept_json: bool) -> tuple[int, str]:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    headers = {"User-Agent": "rns-health/1.0"}
    if accept_json:
        headers["Accept"] = "application/json"
    req = urllib.request.Request(url, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout, context=ctx) as resp:
            return resp.getcode(), resp.read(4096).decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        return e.code, ""


def probe_http_api(
    config_path: Path | None = None,
    ports: tuple[int, ...] = DEFAULT_PORTS,
    timeout: float = 3.0,
) -> str | None:
    """Base URL of a reachable meshtasticd HTTP API, or None."""
    for port in _candidate_ports(config_path, ports):
        scheme = "http" if port == 80 else "https"
        base_url = f"{scheme}://127.0.0.1:{port}"

        try:
            code, body = _get(f"{base_url}/json/report", timeout, accept_json=True)
            if code == 200 and body.lstrip().startswith("{"):
                return base_url
            code, _ = _get(f"{base_url}/api/v1/fromradio", timeout, accept_json=False)
            if code in _ALIVE_CODES:
                return base_url
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.debug("meshtasticd API not on %s: %s", base_url, e)

    return None
