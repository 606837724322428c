"""
Tests for read-only system probes — process table, platform, meshtasticd
config, serial devices, home resolution, versions.
"""

import subprocess
from pathlib import Path

import pytest

from rns_health.core.context import resolve_real_home
from rns_health.core.services import versions
from rns_health.core.services.meshtasticd_api import check_webserver_config, configured_port
from rns_health.core.services.platform_info import detect_platform
from rns_health.core.services.process_table import _read_proc, format_uptime
from rns_health.core.services.system_probes import serial_devices


# ── Process table ────────────────────────────────────────────────────


class TestProcessTable:
    def test_read_proc(self, tmp_path):
        entry = tmp_path / "812"
        entry.mkdir()
        (entry / "comm").write_text("rnsd\n")
        (entry / "cmdline").write_bytes(b"/usr/bin/python3\0/usr/local/bin/rnsd\0--service\0")
        (tmp_path / "self").mkdir()
        (tmp_path / "999").mkdir()  # vanished mid-scan

        rows = _read_proc(tmp_path)
        assert len(rows) == 1
        assert rows[0].pid == 812
        assert rows[0].name == "rnsd"
        assert rows[0].args == ("/usr/bin/python3", "/usr/local/bin/rnsd", "--service")
        assert rows[0].cmdline == "/usr/bin/python3 /usr/local/bin/rnsd --service"

    @pytest.mark.parametrize("seconds, text", [
        (42, "42s"),
        (17 * 60 + 5, "17m"),
        (3 * 3600 + 5 * 60, "3h 5m"),
        (2 * 86400 + 4 * 3600, "2d 4h"),
    ])
    def test_format_uptime(self, seconds, text):
        assert format_uptime(seconds) == text


# ── Platform ─────────────────────────────────────────────────────────


class TestPlatform:
    def _root(self, tmp_path, os_release="", cpuinfo="", version="", model=""):
        (tmp_path / "etc").mkdir()
        (tmp_path / "proc" / "device-tree").mkdir(parents=True)
        (tmp_path / "etc" / "os-release").write_text(os_release)
        (tmp_path / "proc" / "cpuinfo").write_text(cpuinfo)
        (tmp_path / "proc" / "version").write_text(version)
        if model:
            (tmp_path / "proc" / "device-tree" / "model").write_text(model + "\0")
        return tmp_path

    def test_raspberry_pi(self, tmp_path):
        root = self._root(
            tmp_path,
            os_release='NAME="Debian GNU/Linux"\nVERSION_ID="12"\n',
            cpuinfo="Hardware\t: BCM2835\n",
            model="Raspberry Pi 4 Model B Rev 1.4",
        )
        info = detect_platform(root=root, environ={})
        assert info.os_name == "Debian GNU/Linux"
        assert info.os_version == "12"
        assert info.is_raspberry_pi
        assert info.pi_model == "Raspberry Pi 4 Model B Rev 1.4"
        assert not info.is_ssh

    def test_wsl_over_ssh(self, tmp_path):
        root = self._root(
            tmp_path,
            os_release='NAME="Ubuntu"\nVERSION_ID="24.04"\n',
            version="Linux version 5.15.0-microsoft-standard-WSL2",
        )
        info = detect_platform(root=root, environ={"SSH_CONNECTION": "10.0.0.2 5000 10.0.0.3 22"})
        assert info.is_wsl
        assert info.os_name == "WSL (Ubuntu)"
        assert info.is_ssh
        assert not info.is_raspberry_pi

    def test_empty_root(self, tmp_path):
        info = detect_platform(root=tmp_path, environ={})
        assert info.os_name == "Unknown"


# ── meshtasticd config ───────────────────────────────────────────────


class TestMeshtasticdConfig:
    def test_missing(self, tmp_path):
        check = check_webserver_config(tmp_path / "config.yaml")
        assert not check.ok
        assert "not found" in check.hint

    def test_no_webserver_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("Lora:\n  Module: sx1262\n")
        check = check_webserver_config(path)
        assert not check.ok
        assert "Add 'Webserver:'" in check.hint

    def test_commented_out(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("#Webserver:\n#  Port: 443\n")
        assert "commented out" in check_webserver_config(path).hint

    def test_enabled(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("Webserver:\n  Port: 9443\n  RootPath: /usr/share/meshtasticd/web\n")
        assert check_webserver_config(path).ok
        assert configured_port(path) == 9443


# ── Devices, home, versions ──────────────────────────────────────────


class TestMisc:
    def test_serial_devices(self, tmp_path):
        for name in ("ttyUSB0", "ttyACM1", "ttyS0"):
            (tmp_path / name).touch()
        assert serial_devices(tmp_path) == [str(tmp_path / "ttyACM1"), str(tmp_path / "ttyUSB0")]

    def test_home_without_sudo(self, tmp_path):
        assert resolve_real_home({"HOME": str(tmp_path)}) == tmp_path

    @pytest.mark.parametrize("sudo_user", ["root", "../etc", "a/b"])
    def test_suspicious_sudo_user_ignored(self, tmp_path, sudo_user):
        env = {"HOME": str(tmp_path), "SUDO_USER": sudo_user}
        assert resolve_real_home(env) == tmp_path

    def test_pip_show_version(self, monkeypatch):
        def run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 0, stdout="Name: rns\nVersion: 0.9.2\n", stderr="")

        monkeypatch.setattr(versions, "pip_command", lambda: ["pip3"])
        monkeypatch.setattr(versions.subprocess, "run", run)
        assert versions.get_installed_version("rns") == "0.9.2"

    def test_not_installed(self, monkeypatch):
        def run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="WARNING: Package(s) not found: lxmf")

        monkeypatch.setattr(versions, "pip_command", lambda: ["pip3"])
        monkeypatch.setattr(versions.subprocess, "run", run)
        assert versions.get_installed_version("lxmf") is None
