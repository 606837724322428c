"""
Retry policy — exponential backoff around transient failures.

For operations that fail for reasons that go away by themselves:
a flaky pip index, a dpkg lock held by unattended-upgrades, a git
remote timing out.  Do NOT wrap operations that fail deterministically
(a bad destination hash, a missing file); retrying those only delays
the error.

Delays double from ``base_delay``: 2s, 4s, 8s … capped at
``max_delay``.  No delay follows the final attempt.  An error whose
``retryable`` attribute is False ends the run at once.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

Operation = Callable[[], Any]

# exec failures: the next attempt would fail the same way
NON_RETRYABLE_EXIT_CODES = frozenset({126, 127})


class CommandFailed(Exception):
    """An external command ended with a non-zero exit code."""

    def __init__(self, exit_code: int, detail: str = ""):
        self.exit_code = exit_code
        super().__init__(detail or f"exit code {exit_code}")

    @property
    def retryable(self) -> bool:
        return self.exit_code not in NON_RETRYABLE_EXIT_CODES


@dataclass(frozen=True)
class RetryAttempt:
    """One failed attempt and the wait scheduled after it."""

    attempt_number: int
    max_attempts: int
    delay_seconds: float = 0.0      # 0 after the final attempt
    error: str = ""
    exit_code: int | None = None    # set for command failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_number": self.attempt_number,
            "max_attempts": self.max_attempts,
            "delay_seconds": self.delay_seconds,
            "error": self.error,
            "exit_code": self.exit_code,
        }


@dataclass
class RetryOutcome:
    """Full record of a retried operation."""

    succeeded: bool = False
    attempts: int = 0
    failures: list[RetryAttempt] = field(default_factory=list)
    aborted: bool = False

    @property
    def total_delay(self) -> float:
        return sum(f.delay_seconds for f in self.failures)

    @property
    def exit_code(self) -> int:
        """0 on success, else the last failure's exit code (1 if it had none)."""
        if self.succeeded:
            return 0
        if self.failures and self.failures[-1].exit_code is not None:
            return self.failures[-1].exit_code
        return 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "attempts": self.attempts,
            "aborted": self.aborted,
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass
class RetryPolicy:
    """Backoff parameters. One instance per class of operation.

    Args:
        max_attempts: Total tries, including the first.
        base_delay: Wait after the first failure.
        max_delay: Cap on any single wait.
    """

    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 60.0
    sleep: Callable[[float], Any] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays cannot be negative")

    @classmethod
    def from_profile(cls, settings: Any, name: str, **kwargs: Any) -> RetryPolicy:
        """Build from a named profile in HealthSettings."""
        profile = settings.retry_profile(name)
        return cls(
            max_attempts=profile.max_attempts,
            base_delay=profile.base_delay,
            max_delay=profile.max_delay,
            **kwargs,
        )

    def delay_for(self, attempt: int) -> float:
        """Wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def run(
        self,
        operation: Operation,
        max_attempts: int | None = None,
        *,
        label: str = "operation",
        cancel: threading.Event | None = None,
    ) -> RetryOutcome:
        """Run ``operation`` until it succeeds or attempts run out.

        The operation succeeds when it returns a truthy value (``None``
        counts as success for procedures that signal failure by
        raising).  Any ``Exception`` is a failed attempt; the outcome
        never raises it.
        """
        limit = max_attempts if max_attempts is not None else self.max_attempts
        if limit < 1:
            raise ValueError("max_attempts must be at least 1")

        outcome = RetryOutcome()
        for attempt in range(1, limit + 1):
            outcome.attempts = attempt
            error = ""
            exit_code = None
            retryable = True
            try:
                result = operation()
                ok = result is None or bool(result)
                if not ok:
                    error = f"returned {result!r}"
            except Exception as e:
                ok = False
                error = str(e) or type(e).__name__
                exit_code = getattr(e, "exit_code", None)
                retryable = getattr(e, "retryable", True)

            if ok:
                if attempt > 1:
                    logger.info("%s succeeded on attempt %d/%d", label, attempt, limit)
                outcome.succeeded = True
                return outcome

            final = attempt == limit or not retryable
            delay = 0.0 if final else self.delay_for(attempt)
            outcome.failures.append(RetryAttempt(
                attempt_number=attempt,
                max_attempts=limit,
                delay_seconds=delay,
                error=error,
                exit_code=exit_code,
            ))

            if not retryable:
                logger.error("%s failed with a non-retryable error: %s", label, error)
                return outcome
            if final:
                break

            logger.warning(
                "Attempt %d/%d failed for %s, retrying in %.0fs: %s",
                attempt, limit, label, delay, error,
            )
            if self._wait(delay, cancel):
                logger.warning("Retry of %s cancelled after attempt %d", label, attempt)
                outcome.aborted = True
                return outcome

        logger.error(
            "All %d attempts failed for %s, last error: %s",
            limit, label, outcome.failures[-1].error,
        )
        return outcome

    def execute(
        self,
        operation: Operation,
        max_attempts: int | None = None,
        *,
        label: str = "operation",
        cancel: threading.Event | None = None,
    ) -> bool:
        """True on first success, False after exhaustion or cancellation."""
        return self.run(operation, max_attempts, label=label, cancel=cancel).succeeded

    def _wait(self, delay: float, cancel: threading.Event | None) -> bool:
        """Block for ``delay``; True if cancelled."""
        if cancel is not None:
            if self.sleep is time.sleep:
                return cancel.wait(delay)
            if cancel.is_set():
                return True
            self.sleep(delay)
            return cancel.is_set()
        self.sleep(delay)
        return False


def command_operation(argv: list[str], timeout: float | None = None) -> Operation:
    """Adapt an external command into a retryable operation.

    A non-zero exit raises :class:`CommandFailed` carrying the code, so
    the outcome keeps it.  A timeout counts as 124; a missing or
    non-executable program as 127/126, which are not retried.  Output
    is not captured so progress stays visible.
    """
    def _run() -> None:
        try:
            code = subprocess.run(argv, timeout=timeout).returncode
        except subprocess.TimeoutExpired:
            raise CommandFailed(124, f"timed out after {timeout}s") from None
        except FileNotFoundError:
            raise CommandFailed(127, f"{argv[0]}: command not found") from None
        except PermissionError:
            raise CommandFailed(126, f"{argv[0]}: permission denied") from None
        if code < 0:
            # killed by signal N; report the shell's 128 + N
            code = 128 - code
        if code != 0:
            raise CommandFailed(code)

    return _run
