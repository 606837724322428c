"""
Step 2 — RNS tool availability.

Cross-checks the fixed RNS tool list against the last capability scan.
A missing tool is a warning, one per tool: the system still works
without ``rnx`` or ``rnodeconf``.
"""

from __future__ import annotations

from rns_health.core.models.diagnostics import DiagnosticStepResult, StepBuilder
from rns_health.core.services.capability_scan import DOMAIN_TOOLS
from rns_health.core.services.diagnostics.context import DiagnosticContext

NUMBER = 2
TITLE = "RNS Tool Availability"


def check_tools(ctx: DiagnosticContext) -> DiagnosticStepResult:
    step = StepBuilder(NUMBER, TITLE)
    availability = ctx.availability

    missing = 0
    for tool in DOMAIN_TOOLS:
        if availability.is_available(tool.id):
            step.ok(f"{tool.label} ({tool.description})")
        else:
            step.warning(f"{tool.label} ({tool.description}) - not installed", f"tool_missing:{tool.id}")
            missing += 1

    if missing:
        step.fix("Install missing tools: pip3 install rns")

    return step.result()
