"""
Step 1 — environment and prerequisites.

The interpreter and package manager every install path depends on.
Missing either is an issue: nothing else can be installed or updated.
"""

from __future__ import annotations

from rns_health.core.models.diagnostics import DiagnosticStepResult, StepBuilder
from rns_health.core.services.diagnostics.context import DiagnosticContext

NUMBER = 1
TITLE = "Environment & Prerequisites"


def check_environment(ctx: DiagnosticContext) -> DiagnosticStepResult:
    step = StepBuilder(NUMBER, TITLE)

    info = ctx.platform()
    arch = f" ({info.architecture})" if info.architecture else ""
    step.info(f"Platform: {info.os_name} {info.os_version}{arch}")
    if info.is_raspberry_pi:
        step.info(f"Raspberry Pi: {info.pi_model}")
    if info.is_wsl:
        step.info("Running in WSL")
    if info.is_ssh:
        step.info("Connected via SSH")

    if ctx.availability.is_available("python3"):
        version = ctx.python_version()
        step.ok(f"Python {version}" if version else "Python 3 available")
    else:
        step.issue("Python 3 not found", "python_missing")
        step.fix("Fix: sudo apt install python3 python3-pip")

    if ctx.availability.is_available("pip"):
        step.ok("pip available")
    else:
        step.issue("pip not found", "pip_missing")
        step.fix("Fix: sudo apt install python3-pip")

    if info.pep668:
        step.info("PEP 668: Python externally managed (Debian 12+)")

    return step.result()
