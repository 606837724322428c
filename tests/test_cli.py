"""
Tests for CLI commands and global options.
"""

import json
import sys

import pytest
from click.testing import CliRunner

from rns_health.core.services.capability_scan import TOOLS
from rns_health.main import cli

NO_SUCH_SERVICE = "rns-health-test-no-such-daemon"


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """Runner whose managed home is an empty temp dir."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("SUDO_USER", raising=False)
    monkeypatch.delenv("RNSH_LOG_FILE", raising=False)
    return CliRunner()


class TestCLIGlobal:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Reticulum" in result.output
        for command in ("scan", "status", "diagnose", "wait", "check-service", "run"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.4.0" in result.output

    def test_missing_settings_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yml"), "check-service", "rnsd"])
        assert result.exit_code == 2
        assert "not found" in result.output

    def test_invalid_settings_file(self, runner, tmp_path):
        bad = tmp_path / "settings.yml"
        bad.write_text("cache_ttl_seconds: -1\n")
        result = runner.invoke(cli, ["--config", str(bad), "status"])
        assert result.exit_code == 2


class TestScanCommand:
    def test_json_shape(self, runner):
        result = runner.invoke(cli, ["scan", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data) == {t.id for t in TOOLS}
        assert all(isinstance(v, bool) for v in data.values())

    def test_plain(self, runner):
        result = runner.invoke(cli, ["scan"])
        assert result.exit_code == 0
        assert "RNS tools:" in result.output


class TestServiceCommands:
    def test_check_service_json(self, runner):
        result = runner.invoke(cli, ["check-service", NO_SUCH_SERVICE, "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data == {"service": NO_SUCH_SERVICE, "kind": "generic", "running": False, "pid": None}

    def test_wait_for_stop_of_absent_service(self, runner):
        result = runner.invoke(cli, ["wait", NO_SUCH_SERVICE, "--stopped", "--timeout", "0", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["reached"] is True

    def test_wait_times_out(self, runner):
        result = runner.invoke(cli, ["wait", NO_SUCH_SERVICE, "--timeout", "0"])
        assert result.exit_code == 1
        assert "not running" in result.output

    def test_status_json(self, runner):
        result = runner.invoke(cli, ["status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data["running"]) == {"rnsd", "meshtasticd"}
        assert set(data["versions"]) == {"rns", "lxmf", "nomadnet"}
        assert data["domain_tools"]["total"] == 8


class TestDiagnoseCommand:
    def test_json_report(self, runner):
        result = runner.invoke(cli, ["diagnose", "--json"])
        assert result.exit_code in (0, 1)
        data = json.loads(result.stdout)
        assert [s["number"] for s in data["steps"]] == [1, 2, 3, 4, 5]
        assert "recommendations" in data["summary"]


class TestRunCommand:
    def test_failure_exit_code(self, runner):
        result = runner.invoke(
            cli, ["run", "--json", "--label", "script", "--", sys.executable, "-c", "raise SystemExit(3)"],
        )
        assert result.exit_code == 3
        data = json.loads(result.stdout)
        assert data["category"] == "failure"
        assert data["label"] == "script"

    def test_success(self, runner):
        result = runner.invoke(cli, ["run", "--", sys.executable, "-c", "pass"])
        assert result.exit_code == 0
        assert "completed" in result.output

    def test_missing_command(self, runner):
        result = runner.invoke(cli, ["run", "--json", "--", "/nonexistent/rns-tool"])
        assert result.exit_code == 127

    def test_retry_profile(self, runner, tmp_path):
        settings = tmp_path / "settings.yml"
        settings.write_text("retry_profiles:\n  network:\n    max_attempts: 2\n    base_delay: 0\n")
        result = runner.invoke(
            cli,
            ["--config", str(settings), "run", "--retry", "network", "--json", "--",
             sys.executable, "-c", "raise SystemExit(1)"],
        )
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["retry"]["attempts"] == 2
        assert data["retry"]["succeeded"] is False

    @pytest.mark.parametrize("code,category", [(126, "permission_denied"), (127, "command_not_found")])
    def test_retry_keeps_exec_failure_code(self, runner, tmp_path, code, category):
        settings = tmp_path / "settings.yml"
        settings.write_text("retry_profiles:\n  network:\n    max_attempts: 3\n    base_delay: 0\n")
        result = runner.invoke(
            cli,
            ["--config", str(settings), "run", "--retry", "network", "--json", "--",
             sys.executable, "-c", f"raise SystemExit({code})"],
        )
        assert result.exit_code == code
        data = json.loads(result.stdout)
        assert data["exit_code"] == code
        assert data["category"] == category
        assert data["retry"]["attempts"] == 1
        assert data["retry"]["failures"][0]["exit_code"] == code

    def test_retry_keeps_timeout_code(self, runner, tmp_path):
        settings = tmp_path / "settings.yml"
        settings.write_text("retry_profiles:\n  network:\n    max_attempts: 2\n    base_delay: 0\n")
        result = runner.invoke(
            cli,
            ["--config", str(settings), "run", "--retry", "network", "--timeout", "0.2", "--json", "--",
             sys.executable, "-c", "import time; time.sleep(5)"],
        )
        assert result.exit_code == 124
        data = json.loads(result.stdout)
        assert data["category"] == "timed_out"
        assert data["retry"]["attempts"] == 2
