"""
Diagnostic models — immutable results of the health-check pipeline.

Each step produces one DiagnosticStepResult; the pipeline only ever
sums them.  Nothing here is formatted for a terminal: ``level`` tells
the presentation layer how to render a line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

LineLevel = Literal["ok", "info", "warning", "issue", "fix"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class DiagnosticLine:
    """One line of step output."""

    level: LineLevel
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level, "text": self.text}


@dataclass(frozen=True)
class DiagnosticStepResult:
    """Outcome of a single diagnostic step.

    ``failed_checks`` names the specific sub-checks that produced an
    issue or warning (e.g. ``"rnsd_not_running"``); the aggregation
    step derives its recommendations from them.
    """

    number: int
    title: str
    issues: int = 0
    warnings: int = 0
    lines: tuple[DiagnosticLine, ...] = ()
    failed_checks: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.issues < 0 or self.warnings < 0:
            raise ValueError("issue and warning counts cannot be negative")

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "issues": self.issues,
            "warnings": self.warnings,
            "lines": [line.to_dict() for line in self.lines],
            "failed_checks": sorted(self.failed_checks),
        }


class StepBuilder:
    """Accumulates lines and counts while a step runs.

    Steps build with this and hand back ``result()``; the counters
    only go up.
    """

    def __init__(self, number: int, title: str):
        self.number = number
        self.title = title
        self._lines: list[DiagnosticLine] = []
        self._failed: set[str] = set()
        self.issues = 0
        self.warnings = 0

    def ok(self, text: str) -> None:
        self._lines.append(DiagnosticLine("ok", text))

    def info(self, text: str) -> None:
        self._lines.append(DiagnosticLine("info", text))

    def fix(self, text: str) -> None:
        self._lines.append(DiagnosticLine("fix", text))

    def warning(self, text: str, check: str) -> None:
        self._lines.append(DiagnosticLine("warning", text))
        self._failed.add(check)
        self.warnings += 1

    def issue(self, text: str, check: str) -> None:
        self._lines.append(DiagnosticLine("issue", text))
        self._failed.add(check)
        self.issues += 1

    def result(self) -> DiagnosticStepResult:
        return DiagnosticStepResult(
            number=self.number,
            title=self.title,
            issues=self.issues,
            warnings=self.warnings,
            lines=tuple(self._lines),
            failed_checks=frozenset(self._failed),
        )


@dataclass(frozen=True)
class DiagnosticSummary:
    """Aggregation over all steps."""

    issues: int = 0
    warnings: int = 0
    recommendations: tuple[str, ...] = ()
    lines: tuple[DiagnosticLine, ...] = ()

    @property
    def healthy(self) -> bool:
        return self.issues == 0 and self.warnings == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "issues": self.issues,
            "warnings": self.warnings,
            "healthy": self.healthy,
            "recommendations": list(self.recommendations),
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True)
class DiagnosticReport:
    """Full pipeline output. Built fresh on every run, never persisted."""

    steps: tuple[DiagnosticStepResult, ...]
    summary: DiagnosticSummary
    generated_at: str = field(default_factory=_now_iso)

    @property
    def total_issues(self) -> int:
        return self.summary.issues

    @property
    def total_warnings(self) -> int:
        return self.summary.warnings

    @property
    def healthy(self) -> bool:
        return self.summary.healthy

    def step(self, number: int) -> DiagnosticStepResult:
        for s in self.steps:
            if s.number == number:
                return s
        raise KeyError(number)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "steps": [s.to_dict() for s in self.steps],
            "summary": self.summary.to_dict(),
        }
