"""
Service models — how each managed service is detected.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ServiceKind(StrEnum):
    """Detection strategy for a service."""

    PROCESS_EXACT = "process_exact"
    PROCESS_PATTERN_FALLBACK = "process_pattern_fallback"
    SERVICE_MANAGER = "service_manager"
    GENERIC = "generic"


class ServiceSpec(BaseModel):
    """How to tell whether one service is running.

    ``patterns`` are regular expressions matched from the START of the
    full command line (``re.match``), so they must describe the command
    itself, not merely mention the service somewhere in its arguments.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ServiceKind = ServiceKind.GENERIC
    process_name: str = ""                 # defaults to ``name``
    patterns: tuple[str, ...] = ()
    unit: str = ""                         # service-manager unit name
    user_unit: bool = False                # systemctl --user

    @property
    def executable(self) -> str:
        return self.process_name or self.name


class ProcessInfo(BaseModel):
    """One row of the process table."""

    model_config = ConfigDict(frozen=True)

    pid: int
    name: str                              # kernel comm / executable basename
    cmdline: str = ""
    args: tuple[str, ...] = Field(default_factory=tuple)
