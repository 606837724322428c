"""
Tests for the retry policy — backoff, exhaustion, cancellation, profiles.
"""

import sys
import threading

import pytest

from rns_health.core.config.loader import HealthSettings, RetryProfile
from rns_health.core.reliability.retry_policy import (
    CommandFailed,
    RetryPolicy,
    command_operation,
)


class Flaky:
    """Fails ``failures`` times, then succeeds."""

    def __init__(self, failures, raise_error=False):
        self.failures = failures
        self.raise_error = raise_error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            if self.raise_error:
                raise ConnectionError("pypi.org unreachable")
            return False
        return True


# ── Backoff ──────────────────────────────────────────────────────────


class TestBackoff:
    def test_fails_twice_then_succeeds(self, clock):
        op = Flaky(2)
        policy = RetryPolicy(sleep=clock.sleep)

        assert policy.execute(op, label="pip install rns") is True
        assert op.calls == 3
        assert clock.sleeps == [2.0, 4.0]

    def test_exception_counts_as_failure(self, clock):
        op = Flaky(1, raise_error=True)
        outcome = RetryPolicy(sleep=clock.sleep).run(op)
        assert outcome.succeeded
        assert outcome.attempts == 2
        assert outcome.failures[0].error == "pypi.org unreachable"

    def test_none_is_success(self, clock):
        policy = RetryPolicy(sleep=clock.sleep)
        assert policy.execute(lambda: None)
        assert clock.sleeps == []

    def test_delay_capped(self):
        policy = RetryPolicy(base_delay=2.0, max_delay=5.0)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 5.0, 5.0]

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(base_delay=-1)


# ── Exhaustion ───────────────────────────────────────────────────────


class TestExhaustion:
    def test_always_failing(self, clock, caplog):
        op = Flaky(99)
        outcome = RetryPolicy(sleep=clock.sleep).run(op, label="git clone")

        assert not outcome.succeeded
        assert op.calls == 3
        assert clock.sleeps == [2.0, 4.0]  # no wait after the last attempt
        assert [f.attempt_number for f in outcome.failures] == [1, 2, 3]
        assert outcome.total_delay == 6.0
        assert "Attempt 1/3 failed for git clone" in caplog.text
        assert "All 3 attempts failed for git clone, last error: returned False" in caplog.text

    def test_per_call_override(self, clock):
        op = Flaky(99)
        assert not RetryPolicy(sleep=clock.sleep).execute(op, max_attempts=1)
        assert op.calls == 1
        assert clock.sleeps == []


# ── Cancellation ─────────────────────────────────────────────────────


class TestCancellation:
    def test_cancel_aborts_backoff(self, clock):
        cancel = threading.Event()
        cancel.set()
        op = Flaky(99)

        outcome = RetryPolicy(sleep=clock.sleep).run(op, cancel=cancel)
        assert outcome.aborted
        assert not outcome.succeeded
        assert op.calls == 1

    def test_cancel_during_wait(self):
        cancel = threading.Event()
        op = Flaky(99)

        def sleep(seconds):
            cancel.set()

        assert not RetryPolicy(sleep=sleep).execute(op, cancel=cancel)
        assert op.calls == 1

    def test_real_wait_uses_event(self):
        cancel = threading.Event()
        cancel.set()
        outcome = RetryPolicy(base_delay=30.0).run(Flaky(99), cancel=cancel)
        assert outcome.aborted


# ── Profiles ─────────────────────────────────────────────────────────


class TestProfiles:
    def test_lock_profile(self):
        policy = RetryPolicy.from_profile(HealthSettings(), "lock")
        assert policy.max_attempts == 5
        assert policy.base_delay == 0.5
        assert policy.max_delay == 8.0

    def test_unknown_profile_uses_default(self):
        settings = HealthSettings(retry_profiles={"default": RetryProfile(max_attempts=4)})
        assert RetryPolicy.from_profile(settings, "network").max_attempts == 4


# ── Command adapter ──────────────────────────────────────────────────


class TestCommandOperation:
    def test_exit_zero(self):
        assert command_operation([sys.executable, "-c", "pass"])() is None

    def test_exit_nonzero_keeps_code(self):
        op = command_operation([sys.executable, "-c", "raise SystemExit(7)"])
        with pytest.raises(CommandFailed, match="exit code 7") as exc:
            op()
        assert exc.value.exit_code == 7
        assert exc.value.retryable

    def test_timeout_is_124(self):
        op = command_operation([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        with pytest.raises(CommandFailed, match="timed out") as exc:
            op()
        assert exc.value.exit_code == 124

    def test_missing_program_is_127(self):
        with pytest.raises(CommandFailed) as exc:
            command_operation(["rns-health-no-such-tool"])()
        assert exc.value.exit_code == 127
        assert not exc.value.retryable

    def test_failures_logged_with_exit_code(self, clock, caplog):
        op = command_operation([sys.executable, "-c", "raise SystemExit(7)"])
        outcome = RetryPolicy(max_attempts=2, sleep=clock.sleep).run(op, label="rnodeconf")

        assert outcome.exit_code == 7
        assert [f.exit_code for f in outcome.failures] == [7, 7]
        assert "Attempt 1/2 failed for rnodeconf, retrying in 2s: exit code 7" in caplog.text
        assert "All 2 attempts failed for rnodeconf, last error: exit code 7" in caplog.text


# ── Non-retryable failures ───────────────────────────────────────────


class TestNonRetryable:
    @pytest.mark.parametrize("code", [126, 127])
    def test_exec_failure_stops_at_once(self, clock, caplog, code):
        calls = []

        def op():
            calls.append(1)
            raise CommandFailed(code)

        outcome = RetryPolicy(sleep=clock.sleep).run(op, label="rnsd")

        assert len(calls) == 1
        assert clock.sleeps == []
        assert outcome.attempts == 1
        assert outcome.exit_code == code
        assert outcome.failures[0].delay_seconds == 0.0
        assert f"rnsd failed with a non-retryable error: exit code {code}" in caplog.text

    def test_other_codes_are_retried(self, clock):
        def op():
            raise CommandFailed(1)

        outcome = RetryPolicy(sleep=clock.sleep).run(op)
        assert outcome.attempts == 3
        assert outcome.exit_code == 1

    def test_exit_code_without_command_failures(self, clock):
        assert RetryPolicy(sleep=clock.sleep).run(Flaky(99)).exit_code == 1
        assert RetryPolicy(sleep=clock.sleep).run(Flaky(0)).exit_code == 0
