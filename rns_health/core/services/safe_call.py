"""
Safe call — run a user-triggered action and classify how it ended.

The action runs directly in the foreground: commands inherit the
terminal (no captured pipe), so anything that prompts — sudo, pip's
confirmation, rnodeconf's device picker — still works.

Whatever happens, the original exit code is logged and handed back
with a category and a remediation hint.  Nothing propagates except
SystemExit raised by the operation itself.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ErrorCategory(StrEnum):
    """How a delegated operation terminated abnormally."""

    PERMISSION_DENIED = "permission_denied"
    COMMAND_NOT_FOUND = "command_not_found"
    TIMED_OUT = "timed_out"
    INTERRUPTED = "interrupted"
    FAILURE = "failure"


# Shell conventions: timeout(1) → 124, exec failure → 126/127, SIGINT → 130
_EXIT_CODES: dict[int, ErrorCategory] = {
    124: ErrorCategory.TIMED_OUT,
    126: ErrorCategory.PERMISSION_DENIED,
    127: ErrorCategory.COMMAND_NOT_FOUND,
    130: ErrorCategory.INTERRUPTED,
}

_HINTS: dict[ErrorCategory, str] = {
    ErrorCategory.PERMISSION_DENIED: "Permission denied - check file permissions (chmod +x)",
    ErrorCategory.COMMAND_NOT_FOUND: "Command not found - install required tools first",
    ErrorCategory.TIMED_OUT: "Operation timed out - check network connectivity",
    ErrorCategory.INTERRUPTED: "Interrupted by user",
    ErrorCategory.FAILURE: "Operation failed",
}


@dataclass(frozen=True)
class SafeCallResult:
    """Outcome of a safe call.

    ``category`` is None on success.  ``INTERRUPTED`` is informational:
    ``failed`` is False for it.
    """

    label: str
    result: Any = None
    exit_code: int = 0
    category: ErrorCategory | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.category is None

    @property
    def failed(self) -> bool:
        return self.category is not None and self.category != ErrorCategory.INTERRUPTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "exit_code": self.exit_code,
            "category": self.category.value if self.category else None,
            "message": self.message,
        }


def classify_exit_code(code: int) -> ErrorCategory | None:
    """Category for a process exit code; None for 0.

    Negative codes (subprocess: killed by signal N) map like the
    shell's ``128 + N``.
    """
    if code == 0:
        return None
    if code < 0:
        code = 128 - code
    return _EXIT_CODES.get(code, ErrorCategory.FAILURE)


def classify_exception(exc: BaseException) -> tuple[ErrorCategory, int]:
    """Category and equivalent exit code for an exception."""
    if isinstance(exc, KeyboardInterrupt):
        return ErrorCategory.INTERRUPTED, 130
    if isinstance(exc, subprocess.TimeoutExpired):
        return ErrorCategory.TIMED_OUT, 124
    if isinstance(exc, subprocess.CalledProcessError):
        category = classify_exit_code(exc.returncode) or ErrorCategory.FAILURE
        return category, exc.returncode
    if isinstance(exc, PermissionError):
        return ErrorCategory.PERMISSION_DENIED, 126
    if isinstance(exc, FileNotFoundError):
        return ErrorCategory.COMMAND_NOT_FOUND, 127
    return ErrorCategory.FAILURE, 1


def _report(label: str, code: int, category: ErrorCategory, detail: str = "") -> SafeCallResult:
    hint = _HINTS[category]
    message = f"{label}: {hint}" if category != ErrorCategory.FAILURE else (
        f"{label} failed (exit code: {code})"
    )
    if detail:
        message = f"{message} ({detail})"

    if category == ErrorCategory.INTERRUPTED:
        logger.info("safe_call: '%s' interrupted (exit code %d)", label, code)
    else:
        logger.error("safe_call: '%s' failed with exit code %d [%s]", label, code, category.value)

    return SafeCallResult(label=label, exit_code=code, category=category, message=message)


def invoke(label: str, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> SafeCallResult:
    """Run ``operation(*args, **kwargs)`` and classify its outcome.

    An ``int`` return value is treated as an exit code (0 = success);
    anything else is passed back as ``result``.
    """
    try:
        value = operation(*args, **kwargs)
    except (Exception, KeyboardInterrupt) as exc:
        category, code = classify_exception(exc)
        detail = "" if isinstance(exc, KeyboardInterrupt) else str(exc)
        return _report(label, code, category, detail)

    if isinstance(value, int) and not isinstance(value, bool):
        category = classify_exit_code(value)
        if category is not None:
            return _report(label, value, category)
        return SafeCallResult(label=label, result=value, exit_code=0)

    return SafeCallResult(label=label, result=value)


def run_command(label: str, argv: list[str], timeout: float | None = None) -> SafeCallResult:
    """Run an external command in the foreground and classify its exit."""
    logger.debug("safe_call: running %s", " ".join(argv))
    return invoke(label, lambda: subprocess.run(argv, timeout=timeout).returncode)
