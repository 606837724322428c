"""
RNS Health — CLI entrypoint.

Usage:
    python -m rns_health.main --help
    rns-health scan
    rns-health diagnose --json
    rns-health wait rnsd --timeout 10
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from rns_health.core.observability.logging_config import setup_logging

from rns_health import __version__


@click.group()
@click.version_option(version=__version__, prog_name="rns-health")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to settings.yml (default: $RNSH_CONFIG or ~/.config/rns-health/settings.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """RNS Health — operational health of a Reticulum installation."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # Register the managed user's home (sees through sudo)
    from rns_health.core.context import resolve_real_home, set_home
    set_home(resolve_real_home())

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("RNSH_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("RNSH_LOG_FILE"),
        log_file_level=os.environ.get("RNSH_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


def _settings(ctx: click.Context):
    """Load settings or exit with the config error."""
    from rns_health.core.config.loader import ConfigError, load_settings
    from rns_health.core.context import get_home

    try:
        return load_settings(ctx.obj.get("config_path"), home=get_home())
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(2)


def _engine(ctx: click.Context):
    """Settings, status checker and cache for one CLI invocation."""
    from rns_health.core.services.capability_scan import scan as scan_tools
    from rns_health.core.services.capability_scan import specs_for
    from rns_health.core.services.service_manager import SystemdManager
    from rns_health.core.services.service_status import ServiceStatusChecker
    from rns_health.core.services.status_cache import build_status_cache

    settings = _settings(ctx)
    specs = specs_for(settings)
    checker = ServiceStatusChecker(manager=SystemdManager(timeout=settings.probe_timeout_seconds))
    cache = build_status_cache(
        checker,
        scanner=lambda: scan_tools(specs),
        ttl=settings.cache_ttl_seconds,
    )
    return settings, checker, cache


_LINE_STYLE = {
    "ok": ("✅", "green"),
    "info": ("  ", None),
    "warning": ("⚠️ ", "yellow"),
    "issue": ("❌", "red"),
    "fix": ("  →", "cyan"),
}


def _echo_line(level: str, text: str) -> None:
    icon, color = _LINE_STYLE.get(level, ("  ", None))
    click.secho(f"   {icon} {text}", fg=color)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def scan(ctx: click.Context, as_json: bool) -> None:
    """Scan for Reticulum tools and supporting dependencies."""
    from rns_health.core.services.capability_scan import DOMAIN_TOOL_IDS, TOOLS

    _, _, cache = _engine(ctx)
    availability = cache.availability

    if as_json:
        click.echo(json.dumps(availability.to_dict(), indent=2))
        return

    click.echo()
    found = availability.count(DOMAIN_TOOL_IDS)
    click.secho(f"🔍 RNS tools: {found}/{len(DOMAIN_TOOL_IDS)}", fg="cyan", bold=True)
    for spec in TOOLS:
        if availability.is_available(spec.id):
            click.secho(f"   ✓ {spec.label}", fg="green")
        else:
            click.secho(f"   ✗ {spec.label}", fg="red" if spec.domain else "white")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show services, versions and tool summary."""
    from rns_health.core.use_cases.status import get_status

    _, checker, cache = _engine(ctx)
    snap = get_status(cache, checker)

    if as_json:
        click.echo(json.dumps(snap.to_dict(), indent=2))
        return

    click.echo()
    click.secho("📋 Reticulum status", fg="cyan", bold=True)
    click.echo(f"   RNS tools: {snap.domain_tools_found}/{snap.domain_tools_total}")

    click.echo()
    click.secho("   Services:", fg="white", bold=True)
    for name, running in snap.running.items():
        if running:
            extra = f" (up {snap.rnsd_uptime})" if name == "rnsd" and snap.rnsd_uptime else ""
            click.secho(f"     ● {name} running{extra}", fg="green")
        else:
            click.secho(f"     ○ {name} stopped", fg="yellow")
    if snap.rnsd_autostart is not None:
        click.echo(f"     rnsd autostart: {'enabled' if snap.rnsd_autostart else 'disabled'}")

    click.echo()
    click.secho("   Versions:", fg="white", bold=True)
    for package, version in snap.versions.items():
        click.echo(f"     {package}: {version or 'not installed'}")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def diagnose(ctx: click.Context, as_json: bool) -> None:
    """Run the full diagnostic and print recommendations."""
    from rns_health.core.services.diagnostics import build_context, run_diagnostics

    settings, checker, cache = _engine(ctx)
    diag_ctx = build_context(settings=settings, checker=checker, cache=cache)

    def progress(number: int, total: int, title: str) -> None:
        click.secho(f"[{number}/{total}] {title}...", fg="white", dim=True, err=True)

    show_progress = not as_json and not ctx.obj.get("quiet")
    report = run_diagnostics(diag_ctx, progress=progress if show_progress else None)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.summary.issues == 0 else 1)

    for step in report.steps:
        click.secho(f"\n── {step.number}. {step.title}", fg="cyan")
        for line in step.lines:
            _echo_line(line.level, line.text)

    click.echo()
    click.secho("── Summary", fg="cyan", bold=True)
    for line in report.summary.lines:
        _echo_line(line.level, line.text)
    click.echo()

    sys.exit(0 if report.summary.issues == 0 else 1)


@cli.command()
@click.argument("service")
@click.option("--stopped", is_flag=True, help="Wait for the service to stop instead.")
@click.option("--timeout", "-t", type=float, default=None, help="Seconds to wait (default from settings).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def wait(ctx: click.Context, service: str, stopped: bool, timeout: float | None, as_json: bool) -> None:
    """Wait for SERVICE to reach the running (or stopped) state."""
    from rns_health.core.services.transition import wait_for_service

    settings, checker, _ = _engine(ctx)
    max_wait = timeout if timeout is not None else settings.max_wait_for(service)

    try:
        result = wait_for_service(
            checker,
            service,
            running=not stopped,
            max_wait_seconds=max_wait,
            interval=settings.poll_interval_seconds,
        )
    except KeyboardInterrupt:
        click.echo()
        click.secho("Interrupted", fg="yellow", err=True)
        sys.exit(130)

    if as_json:
        click.echo(json.dumps({"service": service, **result.to_dict()}, indent=2))
    else:
        target = "stopped" if stopped else "running"
        if result.reached:
            click.secho(f"✅ {service} {target} ({result.elapsed_seconds:.1f}s)", fg="green")
        else:
            click.secho(f"⏱  {service} not {target} after {max_wait:.0f}s", fg="yellow")

    sys.exit(0 if result.reached else 1)


@cli.command("check-service")
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check_service(ctx: click.Context, name: str, as_json: bool) -> None:
    """Report whether NAME is running, bypassing the cache."""
    _, checker, _ = _engine(ctx)
    spec = checker.spec(name)
    pid = checker.find_pid(name)
    running = checker.is_running(name)

    if as_json:
        click.echo(json.dumps({
            "service": name,
            "kind": spec.kind.value,
            "running": running,
            "pid": pid,
        }, indent=2))
    elif running:
        pid_label = f" (PID {pid})" if pid is not None else ""
        click.secho(f"● {name} running{pid_label}", fg="green")
    else:
        click.secho(f"○ {name} not running", fg="yellow")

    sys.exit(0 if running else 1)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("argv", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--label", "-l", default=None, help="Name shown in messages (default: the command).")
@click.option("--retry", "profile", default=None, help="Retry profile from settings (e.g. network).")
@click.option("--timeout", "-t", type=float, default=None, help="Per-attempt timeout in seconds.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    argv: tuple[str, ...],
    label: str | None,
    profile: str | None,
    timeout: float | None,
    as_json: bool,
) -> None:
    """Run a command in the foreground and classify how it ended.

    \b
    Examples:
        rns-health run -- pip3 install --upgrade rns
        rns-health run --retry network -- git pull
    """
    from rns_health.core.reliability.retry_policy import RetryPolicy, command_operation
    from rns_health.core.services.safe_call import invoke, run_command

    label = label or argv[0]
    outcome = None

    if profile:
        policy = RetryPolicy.from_profile(_settings(ctx), profile)

        def attempt_all() -> int:
            nonlocal outcome
            outcome = policy.run(command_operation(list(argv), timeout), label=label)
            return outcome.exit_code

        result = invoke(label, attempt_all)
    else:
        result = run_command(label, list(argv), timeout=timeout)

    if as_json:
        data = result.to_dict()
        if outcome is not None:
            data["retry"] = outcome.to_dict()
        click.echo(json.dumps(data, indent=2))
    elif result.ok:
        click.secho(f"✅ {label} completed", fg="green")
    else:
        click.secho(f"{'⚠️ ' if not result.failed else '❌'} {result.message}",
                    fg="yellow" if not result.failed else "red", err=True)

    sys.exit(result.exit_code)


if __name__ == "__main__":
    cli()
