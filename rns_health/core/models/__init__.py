"""
Domain models for the health engine.

All models are re-exported here for convenient access:

    from rns_health.core.models import ServiceKind, ToolAvailability, DiagnosticReport
"""

from rns_health.core.models.diagnostics import (
    DiagnosticLine,
    DiagnosticReport,
    DiagnosticStepResult,
    DiagnosticSummary,
    StepBuilder,
)
from rns_health.core.models.service import ProcessInfo, ServiceKind, ServiceSpec
from rns_health.core.models.tools import ToolAvailability, ToolSpec

__all__ = [
    # diagnostics.py
    "DiagnosticLine",
    "DiagnosticReport",
    "DiagnosticStepResult",
    "DiagnosticSummary",
    "StepBuilder",
    # service.py
    "ProcessInfo",
    "ServiceKind",
    "ServiceSpec",
    # tools.py
    "ToolAvailability",
    "ToolSpec",
]
