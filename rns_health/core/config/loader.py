"""
Settings loader — reads settings.yml into a validated model.

The engine runs fine with no settings file at all; every field has
the default the management tool has always used.  The file exists so
that call sites with different latency expectations (a local process
check vs. a pip download) can be tuned without code changes.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "RNSH_CONFIG"
DEFAULT_SETTINGS_FILE = "~/.config/rns-health/settings.yml"


class ConfigError(Exception):
    """Raised when the settings file is unreadable or invalid."""


class RetryProfile(BaseModel):
    """Attempt count and backoff base for one class of operation."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=2.0, ge=0)
    max_delay: float = Field(default=60.0, ge=0)


def _default_retry_profiles() -> dict[str, RetryProfile]:
    return {
        "default": RetryProfile(),
        # pip / git / npm downloads
        "network": RetryProfile(max_attempts=3, base_delay=2.0),
        # dpkg / apt lock contention clears quickly
        "lock": RetryProfile(max_attempts=5, base_delay=0.5, max_delay=8.0),
    }


class HealthSettings(BaseModel):
    """Tunables for the health engine.

    Paths starting with ``~`` are resolved against the managed user's
    home (see ``rns_health.core.context``), not the process ``$HOME``.
    """

    # ── Caching ──────────────────────────────────────────────────
    cache_ttl_seconds: float = Field(default=10.0, gt=0)

    # ── Transition polling ──────────────────────────────────────
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    poll_max_wait_seconds: dict[str, float] = Field(
        default_factory=lambda: {"rnsd": 10.0, "meshtasticd": 10.0},
    )
    default_poll_max_wait_seconds: float = Field(default=10.0, gt=0)

    # ── Retry ────────────────────────────────────────────────────
    retry_profiles: dict[str, RetryProfile] = Field(default_factory=_default_retry_profiles)

    # ── Probes ───────────────────────────────────────────────────
    probe_timeout_seconds: float = Field(default=5.0, gt=0)

    # ── Paths owned by the installer ────────────────────────────
    reticulum_config: str = "~/.reticulum/config"
    meshtasticd_config: str = "/etc/meshtasticd/config.yaml"
    meshchat_dir: str = "~/reticulum-meshchat"
    meshtasticd_http_ports: list[int] = Field(default_factory=lambda: [443, 9443, 80, 4403])

    @field_validator("meshtasticd_http_ports")
    @classmethod
    def _ports_in_range(cls, ports: list[int]) -> list[int]:
        for port in ports:
            if not 0 < port < 65536:
                raise ValueError(f"invalid port: {port}")
        return ports

    def retry_profile(self, name: str) -> RetryProfile:
        """Profile for an operation class, falling back to ``default``."""
        if name in self.retry_profiles:
            return self.retry_profiles[name]
        return self.retry_profiles.get("default", RetryProfile())

    def max_wait_for(self, service: str) -> float:
        """Transition-poll bound for a service."""
        return self.poll_max_wait_seconds.get(service, self.default_poll_max_wait_seconds)

    def resolve_path(self, value: str, home: Path) -> Path:
        """Expand a leading ``~`` against ``home``."""
        if value == "~":
            return home
        if value.startswith("~/"):
            return home / value[2:]
        return Path(value)


def find_settings_file(home: Path | None = None) -> Path | None:
    """Locate the settings file: RNSH_CONFIG env, then the per-user default.

    Returns:
        Path to an existing file, or None.
    """
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    base = home if home is not None else Path.home()
    candidate = base / DEFAULT_SETTINGS_FILE[2:]
    return candidate if candidate.is_file() else None


def load_settings(path: Path | None = None, home: Path | None = None) -> HealthSettings:
    """Load and validate settings.

    Args:
        path: Explicit settings path. If None, searches the default locations.
        home: Home directory used for the default location.

    Returns:
        Validated HealthSettings. Defaults when no file exists.

    Raises:
        ConfigError: If a requested file (argument or RNSH_CONFIG) is
            missing, or the file found is unreadable or invalid.
    """
    if path is None:
        path = find_settings_file(home)

    if path is None:
        logger.debug("No settings file, using defaults")
        return HealthSettings()

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return HealthSettings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "health" key or be flat
    settings_data = data.get("health", data)

    try:
        settings = HealthSettings.model_validate(settings_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s (cache TTL %.0fs)", path, settings.cache_ttl_seconds)
    return settings
