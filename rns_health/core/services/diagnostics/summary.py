"""
Step 6 — aggregation and recommendations.

Totals are plain sums of the step results.  Recommendations are looked
up from the failed check ids in priority order: a missing interpreter
blocks everything else, a stopped daemon blocks every RNS tool, and
so on down.  At most ``MAX_RECOMMENDATIONS`` are returned.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

from rns_health.core.models.diagnostics import (
    DiagnosticLine,
    DiagnosticStepResult,
    DiagnosticSummary,
)

NUMBER = 6
TITLE = "Summary"

MAX_RECOMMENDATIONS = 5

Rule = Callable[[set[str]], str | None]


def _has_prefix(checks: set[str], prefix: str) -> bool:
    return any(c.startswith(prefix) for c in checks)


def _rules(config_path: Path) -> list[Rule]:
    def python(c: set[str]) -> str | None:
        if "python_missing" in c or "pip_missing" in c:
            return "Install Python 3 and pip: sudo apt install python3 python3-pip"
        return None

    def rnsd(c: set[str]) -> str | None:
        if "rnsd_not_running" not in c:
            return None
        if "tool_missing:rnsd" in c:
            return "Install Reticulum: pip3 install rns"
        return "Start the rnsd daemon: rnsd --daemon"

    def config(c: set[str]) -> str | None:
        if "config_missing" in c:
            return f"Create a Reticulum config at {config_path} (start rnsd once or apply a template)"
        if "config_empty" in c or "config_unreadable" in c:
            return f"Fix the Reticulum config at {config_path}"
        return None

    def dialout(c: set[str]) -> str | None:
        if "dialout_missing" in c:
            return "Add your user to the dialout group: sudo usermod -aG dialout $USER"
        return None

    def meshtasticd(c: set[str]) -> str | None:
        if "meshtasticd_not_running" in c:
            return "Start meshtasticd: sudo systemctl start meshtasticd"
        if "meshtasticd_api_unreachable" in c:
            return "Enable the meshtasticd webserver (Webserver: Port: 443 in /etc/meshtasticd/config.yaml)"
        return None

    def tools(c: set[str]) -> str | None:
        if not _has_prefix(c, "tool_missing:"):
            return None
        if "tool_missing:rnsd" in c and "rnsd_not_running" in c:
            return None
        return "Install the missing RNS tools: pip3 install --upgrade rns"

    def network(c: set[str]) -> str | None:
        if "no_active_interfaces" in c:
            return "Bring up a network interface (check cable or Wi-Fi)"
        return None

    def interfaces(c: set[str]) -> str | None:
        if "interfaces_disabled" in c:
            return f"Review disabled interfaces in {config_path}"
        return None

    def failed_steps(c: set[str]) -> str | None:
        if _has_prefix(c, "step_failed:"):
            return "Re-run the diagnostic with --debug to see why a step could not complete"
        return None

    return [python, rnsd, config, dialout, meshtasticd, tools, network, interfaces, failed_steps]


def recommendations(failed_checks: Iterable[str], config_path: Path) -> tuple[str, ...]:
    """Next actions for a set of failed check ids, highest priority first."""
    checks = set(failed_checks)
    out: list[str] = []
    for rule in _rules(config_path):
        text = rule(checks)
        if text and text not in out:
            out.append(text)
        if len(out) == MAX_RECOMMENDATIONS:
            break
    return tuple(out)


def summarize(steps: Iterable[DiagnosticStepResult], config_path: Path) -> DiagnosticSummary:
    steps = tuple(steps)
    issues = sum(s.issues for s in steps)
    warnings = sum(s.warnings for s in steps)

    if issues == 0 and warnings == 0:
        return DiagnosticSummary(
            lines=(DiagnosticLine("ok", "All checks passed - system looks healthy"),),
        )

    lines: list[DiagnosticLine] = []
    if issues:
        lines.append(DiagnosticLine("issue", f"Found {issues} issue(s)"))
    if warnings:
        lines.append(DiagnosticLine("warning", f"Found {warnings} warning(s)"))

    failed: set[str] = set()
    for s in steps:
        failed |= s.failed_checks
    recs = recommendations(failed, config_path)
    for i, text in enumerate(recs, 1):
        lines.append(DiagnosticLine("fix", f"{i}. {text}"))

    return DiagnosticSummary(
        issues=issues,
        warnings=warnings,
        recommendations=recs,
        lines=tuple(lines),
    )
