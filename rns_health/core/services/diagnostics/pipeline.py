"""
Diagnostic pipeline — runs the five checks, then aggregates.

Steps run in order and unconditionally.  A step that raises degrades
to a single warning for that step; the rest of the run is unaffected.
"""

from __future__ import annotations

import logging
from typing import Callable

from rns_health.core.models.diagnostics import (
    DiagnosticLine,
    DiagnosticReport,
    DiagnosticStepResult,
)
from rns_health.core.services.diagnostics import (
    configuration,
    environment,
    network,
    services,
    summary,
    tools,
)
from rns_health.core.services.diagnostics.context import DiagnosticContext

logger = logging.getLogger(__name__)

Progress = Callable[[int, int, str], None]
Step = tuple[int, str, Callable[[DiagnosticContext], DiagnosticStepResult]]

STEPS: tuple[Step, ...] = (
    (environment.NUMBER, environment.TITLE, environment.check_environment),
    (tools.NUMBER, tools.TITLE, tools.check_tools),
    (configuration.NUMBER, configuration.TITLE, configuration.check_configuration),
    (services.NUMBER, services.TITLE, services.check_services),
    (network.NUMBER, network.TITLE, network.check_network),
)

TOTAL_STEPS = len(STEPS) + 1


def _failed_step(number: int, title: str, exc: Exception) -> DiagnosticStepResult:
    return DiagnosticStepResult(
        number=number,
        title=title,
        warnings=1,
        lines=(DiagnosticLine("warning", f"Check could not complete: {exc}"),),
        failed_checks=frozenset({f"step_failed:{number}"}),
    )


def run_diagnostics(
    ctx: DiagnosticContext,
    progress: Progress | None = None,
) -> DiagnosticReport:
    """Run every diagnostic step and return the aggregated report.

    Args:
        ctx: Cache, checker, settings and probes for this run.
        progress: Called as ``progress(number, total, title)`` before
            each step, including the summary.
    """
    results: list[DiagnosticStepResult] = []

    for number, title, check in STEPS:
        if progress:
            progress(number, TOTAL_STEPS, title)
        try:
            result = check(ctx)
        except Exception as e:
            logger.warning("Diagnostic step %d (%s) failed: %s", number, title, e, exc_info=True)
            result = _failed_step(number, title, e)
        results.append(result)

    if progress:
        progress(summary.NUMBER, TOTAL_STEPS, summary.TITLE)
    agg = summary.summarize(results, ctx.reticulum_config)

    logger.info(
        "Diagnostics complete: %d issue(s), %d warning(s)", agg.issues, agg.warnings,
    )
    return DiagnosticReport(steps=tuple(results), summary=agg)
