"""
Shared test fixtures: fake clock, synthetic process tables, fake
service manager, and a diagnostic context describing a healthy node.
"""

import logging
from pathlib import Path

import pytest

from rns_health.core import context as home_context
from rns_health.core.config.loader import HealthSettings
from rns_health.core.models.service import ProcessInfo
from rns_health.core.models.tools import ToolAvailability
from rns_health.core.services.capability_scan import DOMAIN_TOOL_IDS
from rns_health.core.services.diagnostics.context import DiagnosticContext
from rns_health.core.services.platform_info import PlatformInfo
from rns_health.core.services.service_status import ServiceStatusChecker
from rns_health.core.services.status_cache import build_status_cache

HEALTHY_CONFIG = """\
[reticulum]
  enable_transport = False
  share_instance = Yes

[logging]
  loglevel = 4

[interfaces]
  [[Default Interface]]
    type = AutoInterface
    enabled = yes
"""


class FakeClock:
    """Monotonic clock the test advances by hand. Doubles as ``sleep``."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeManager:
    """Service manager with canned answers; None means unreachable."""

    def __init__(self, active=None, enabled=None):
        self.active = active or {}
        self.enabled = enabled or {}
        self.calls: list[tuple[str, str, bool]] = []

    def is_active(self, unit, user=False):
        self.calls.append(("is-active", unit, user))
        return self.active.get(unit)

    def is_enabled(self, unit, user=False):
        self.calls.append(("is-enabled", unit, user))
        return self.enabled.get(unit)


def proc(pid: int, name: str, cmdline: str = "") -> ProcessInfo:
    """Process-table row; cmdline defaults to the bare name."""
    cmdline = cmdline or name
    return ProcessInfo(pid=pid, name=name, cmdline=cmdline, args=tuple(cmdline.split()))


def availability(*present: str) -> ToolAvailability:
    return ToolAvailability(tools={t: True for t in present})


HEALTHY_PROCESSES = [
    proc(1, "systemd", "/sbin/init"),
    proc(812, "rnsd", "/usr/local/bin/rnsd --service"),
]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch):
    """Point the managed-home singleton at a temp dir for every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.delenv("RNSH_CONFIG", raising=False)
    home_context.set_home(home)
    yield home
    home_context.set_home(None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def healthy_ctx(isolated_home: Path, clock: FakeClock) -> DiagnosticContext:
    """Everything installed, rnsd running, config valid, network up."""
    config = isolated_home / ".reticulum" / "config"
    config.parent.mkdir(parents=True)
    config.write_text(HEALTHY_CONFIG)

    tools = availability(*DOMAIN_TOOL_IDS, "python3", "pip", "git")
    checker = ServiceStatusChecker(
        processes=lambda: HEALTHY_PROCESSES,
        manager=FakeManager(enabled={"rnsd.service": True}),
    )
    cache = build_status_cache(
        checker,
        scanner=lambda: tools,
        version_probe=lambda package: "0.9.2",
        clock=clock,
    )
    return DiagnosticContext(
        cache=cache,
        checker=checker,
        settings=HealthSettings(),
        home=isolated_home,
        platform=lambda: PlatformInfo(os_name="Debian GNU/Linux", os_version="12", architecture="aarch64"),
        python_version=lambda: "3.11.2",
        interfaces=lambda: ["eth0 UP 192.168.1.20/24"],
        serial_devices=lambda: [],
        groups=lambda: {"pi", "dialout"},
        rnstatus=lambda: ["Shared Instance[37428]", "   Status    : Up"],
        uptime=lambda pid: 3900.0,
        meshtasticd_api=lambda: None,
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """CLI tests call setup_logging(); keep that from leaking."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
