"""
Step 5 — network, interfaces and hardware.
"""

from __future__ import annotations

from rns_health.core.models.diagnostics import DiagnosticStepResult, StepBuilder
from rns_health.core.services.diagnostics.context import DiagnosticContext
from rns_health.core.services.status_cache import running_key

NUMBER = 5
TITLE = "Network & Interfaces"

DIALOUT_GROUP = "dialout"


def check_network(ctx: DiagnosticContext) -> DiagnosticStepResult:
    step = StepBuilder(NUMBER, TITLE)

    interfaces = ctx.interfaces()
    if interfaces:
        step.ok(f"Active network interfaces: {len(interfaces)}")
        for line in interfaces:
            step.info(line)
    else:
        step.warning("No active network interfaces found", "no_active_interfaces")
        step.fix("Fix: check cabling / Wi-Fi, then `ip link` to bring an interface up")

    devices = ctx.serial_devices()
    if devices:
        step.info(f"USB serial devices: {', '.join(devices)}")
        if DIALOUT_GROUP not in ctx.groups():
            step.warning("User not in 'dialout' group (needed for serial access)", "dialout_missing")
            step.fix("Fix: sudo usermod -aG dialout $USER (then log out and back in)")
        else:
            step.ok("User is in 'dialout' group")
    else:
        step.info("No USB serial devices detected")

    if ctx.availability.is_available("rnstatus") and ctx.cache.get(running_key("rnsd")):
        excerpt = ctx.rnstatus()
        if excerpt:
            step.info("RNS interface status:")
            for line in excerpt:
                step.info(f"  {line}")

    return step.result()
