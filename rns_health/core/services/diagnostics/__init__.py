"""Six-step diagnostic pipeline."""

from rns_health.core.services.diagnostics.context import DiagnosticContext, build_context  # noqa: F401
from rns_health.core.services.diagnostics.pipeline import run_diagnostics  # noqa: F401
