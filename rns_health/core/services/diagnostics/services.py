"""
Step 4 — service health.

rnsd is the one service every RNS tool needs; meshtasticd only matters
when it is installed.  Running state comes through the status cache,
so a diagnostic run right after the menu drew costs no extra probes.
"""

from __future__ import annotations

from rns_health.core.models.diagnostics import DiagnosticStepResult, StepBuilder
from rns_health.core.services import meshtasticd_api
from rns_health.core.services.diagnostics.context import DiagnosticContext
from rns_health.core.services.process_table import format_uptime
from rns_health.core.services.status_cache import running_key

NUMBER = 4
TITLE = "Service Health"


def _check_rnsd(ctx: DiagnosticContext, step: StepBuilder) -> None:
    if not ctx.cache.get(running_key("rnsd")):
        step.warning("rnsd daemon is not running", "rnsd_not_running")
        if ctx.availability.is_available("rnsd"):
            step.fix("Fix: Start rnsd with: rnsd --daemon")
        else:
            step.fix("Fix: Install Reticulum first: pip3 install rns")
        return

    pid = ctx.checker.find_pid("rnsd")
    seconds = ctx.uptime(pid) if pid is not None else None
    if seconds is not None:
        step.ok(f"rnsd daemon is running (PID {pid}, up {format_uptime(seconds)})")
    else:
        step.ok("rnsd daemon is running")

    autostart = ctx.checker.autostart_enabled("rnsd")
    if autostart is True:
        step.info("rnsd autostart: enabled (systemd user service)")
    elif autostart is False:
        step.info("rnsd autostart: not enabled")


def _check_meshtasticd(ctx: DiagnosticContext, step: StepBuilder) -> None:
    if not ctx.availability.is_available("meshtasticd"):
        return

    if not ctx.cache.get(running_key("meshtasticd")):
        step.warning("meshtasticd is installed but not running", "meshtasticd_not_running")
        step.fix("Fix: sudo systemctl start meshtasticd")
        return

    step.ok("meshtasticd service is running")
    url = ctx.probe_meshtasticd_api()
    if url:
        step.ok(f"meshtasticd HTTP API reachable at {url}")
        return

    step.warning("meshtasticd HTTP API not reachable", "meshtasticd_api_unreachable")
    step.fix(meshtasticd_api.check_webserver_config(ctx.meshtasticd_config).hint)


def check_services(ctx: DiagnosticContext) -> DiagnosticStepResult:
    step = StepBuilder(NUMBER, TITLE)
    _check_rnsd(ctx, step)
    _check_meshtasticd(ctx, step)
    return step.result()
