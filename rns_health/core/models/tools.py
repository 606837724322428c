"""
Tool models — what the capability scanner looks for and what it found.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict


class ToolSpec(BaseModel):
    """One entry in the fixed tool list.

    A tool is present when ANY of ``candidates`` resolves on the search
    path, or ANY of ``directories`` exists (tools installed as a git
    checkout rather than an executable).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    candidates: tuple[str, ...] = ()
    directories: tuple[str, ...] = ()    # "~/..." resolved against the managed home
    domain: bool = False                 # part of the RNS suite itself
    description: str = ""

    def executables(self) -> tuple[str, ...]:
        return self.candidates or (self.id,)


@dataclass(frozen=True)
class ToolAvailability:
    """Snapshot of which tools were present at scan time.

    Replaced wholesale on every scan; never mutated or merged.
    """

    tools: Mapping[str, bool] = field(default_factory=dict)
    scanned_at: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tools", MappingProxyType(dict(self.tools)))

    def is_available(self, tool_id: str) -> bool:
        """Whether the tool was found. Unknown ids are reported absent."""
        return self.tools.get(tool_id, False)

    def missing(self, tool_ids: Iterable[str]) -> list[str]:
        return [t for t in tool_ids if not self.is_available(t)]

    def count(self, tool_ids: Iterable[str]) -> int:
        return sum(1 for t in tool_ids if self.is_available(t))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.tools)
