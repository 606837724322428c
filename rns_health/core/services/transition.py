"""
Transition poller — bounded wait for a service to reach a state.

Used right after a start/stop action instead of a fixed ``sleep 3``.
Always polls the UNCACHED status checker: a cached "running" read from
before ``rnsd --daemon stop`` would end the wait immediately.

Timeout is a normal outcome (``reached=False``), never an exception.
A ``threading.Event`` passed as ``cancel`` aborts the wait at once.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollResult:
    """Outcome of a bounded wait."""

    reached: bool
    elapsed_seconds: float
    aborted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "reached": self.reached,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "aborted": self.aborted,
        }


def wait_for(
    predicate: Callable[[], bool],
    max_wait_seconds: float,
    *,
    interval: float = 1.0,
    cancel: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Any] | None = None,
) -> PollResult:
    """Poll ``predicate`` every ``interval`` seconds until it holds.

    The predicate is evaluated once more when the bound is reached, so
    a state change landing exactly at ``max_wait_seconds`` still counts.

    Args:
        predicate: Zero-arg check. An exception counts as "not yet".
        max_wait_seconds: Upper bound on the wait.
        interval: Seconds between evaluations.
        cancel: Set from another thread to abort immediately.
        clock: Monotonic time source.
        sleep: Blocking wait; defaults to ``cancel.wait`` / ``time.sleep``.

    Returns:
        PollResult with ``reached``, ``elapsed_seconds`` and ``aborted``.
    """
    if max_wait_seconds < 0:
        raise ValueError("max_wait_seconds cannot be negative")
    if interval <= 0:
        raise ValueError("interval must be positive")

    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    start = clock()
    while True:
        elapsed = clock() - start
        if cancel is not None and cancel.is_set():
            logger.info("Wait aborted after %.1fs", elapsed)
            return PollResult(reached=False, elapsed_seconds=elapsed, aborted=True)

        try:
            holds = bool(predicate())
        except Exception as e:
            logger.debug("Poll predicate raised, treating as not reached: %s", e)
            holds = False

        elapsed = clock() - start
        if holds:
            return PollResult(reached=True, elapsed_seconds=elapsed)
        if elapsed >= max_wait_seconds:
            return PollResult(reached=False, elapsed_seconds=elapsed)

        sleep(min(interval, max_wait_seconds - elapsed))


def wait_for_service(
    checker: Any,
    name: str,
    running: bool = True,
    max_wait_seconds: float = 10.0,
    **kwargs: Any,
) -> PollResult:
    """Wait until ``checker.is_running(name) == running``.

    Logs a warning on timeout; the caller decides what to show.
    """
    target = "running" if running else "stopped"
    result = wait_for(
        lambda: checker.is_running(name) == running,
        max_wait_seconds,
        **kwargs,
    )
    if result.reached:
        logger.info("%s %s after %.1fs", name, target, result.elapsed_seconds)
    elif not result.aborted:
        logger.warning("%s not %s within %.0fs", name, target, max_wait_seconds)
    return result
