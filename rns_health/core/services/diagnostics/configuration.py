"""
Step 3 — Reticulum configuration validity.

The config file belongs to the installer; this step only reads it.
Checks: exists, readable, not (nearly) empty, no known-bad settings.
"""

from __future__ import annotations

import re

from rns_health.core.models.diagnostics import DiagnosticStepResult, StepBuilder
from rns_health.core.services.diagnostics.context import DiagnosticContext

NUMBER = 3
TITLE = "Configuration Validation"

# Anything shorter cannot hold even a [reticulum] section
MIN_CONFIG_BYTES = 10

# (check id, pattern, warning text)
KNOWN_BAD_PATTERNS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    (
        "interfaces_disabled",
        re.compile(r"^\s*(?:interface_enabled|enabled)\s*=\s*(?:false|no|off)\s*$",
                   re.IGNORECASE | re.MULTILINE),
        "Some interfaces are disabled in config",
    ),
    (
        "transport_typo",
        re.compile(r"^\s*enable_transport\s*=\s*(?!(?:yes|no|true|false)\s*$)\S+",
                   re.IGNORECASE | re.MULTILINE),
        "enable_transport has a value other than yes/no",
    ),
)


def _display(path, home) -> str:
    try:
        return f"~/{path.relative_to(home)}"
    except ValueError:
        return str(path)


def check_configuration(ctx: DiagnosticContext) -> DiagnosticStepResult:
    step = StepBuilder(NUMBER, TITLE)
    config = ctx.reticulum_config
    shown = _display(config, ctx.home)

    if not config.is_file():
        step.warning("No configuration found", "config_missing")
        step.fix("Fix: Run first-time setup or start rnsd to create default config")
        return step.result()

    step.ok(f"Config file exists: {shown}")

    try:
        raw = config.read_bytes()
    except OSError as e:
        step.issue(f"Config file cannot be read: {e.strerror or e}", "config_unreadable")
        step.fix(f"Fix: check ownership and permissions of {config}")
        return step.result()

    if len(raw) < MIN_CONFIG_BYTES:
        step.issue(f"Config file appears empty ({len(raw)} bytes)", "config_empty")
        step.fix(
            f"Fix: Apply a config template to {config} "
            "(Advanced > Apply Configuration Template)"
        )

    text = raw.decode("utf-8", errors="replace")
    for check_id, pattern, message in KNOWN_BAD_PATTERNS:
        if pattern.search(text):
            step.warning(message, check_id)
            step.fix(f"Fix: review {shown}")

    identities = config.parent / "storage" / "identities"
    if identities.is_dir():
        try:
            count = sum(1 for p in identities.rglob("*") if p.is_file())
        except OSError:
            count = 0
        step.info(f"Known identities: {count}")

    return step.result()
