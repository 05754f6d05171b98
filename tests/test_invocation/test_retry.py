"""Tests for the retry orchestrator and failure classification."""

import pytest

from gitdeck.errors import FailureKind, OperationCancelled, OperationFailure
from gitdeck.invocation import (
    CancellationToken,
    Failure,
    OperationClass,
    RetryOrchestrator,
    RetryPolicy,
    Success,
    classify_message,
    is_retryable_message,
)
from gitdeck.utils import LogCapture


class ScriptedWork:
    """Unit of work that plays back a script of results and failures."""

    def __init__(self, *script):
        self.script = list(script)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        step = self.script[min(self.calls, len(self.script)) - 1]
        if isinstance(step, Exception):
            raise step
        return step


def transient(message: str = "network timeout") -> OperationFailure:
    return OperationFailure(message, kind=FailureKind.TRANSIENT)


def fatal(message: str = "permission denied") -> OperationFailure:
    return OperationFailure(message, kind=FailureKind.FATAL)


class TestClassifyMessage:
    """Tests for classify_message."""

    def test_ssl_handshake_is_transient(self):
        """Test TLS failures are transient."""
        assert classify_message("SSL handshake failed") is FailureKind.TRANSIENT

    def test_permission_denied_is_fatal(self):
        """Test authorisation failures are fatal."""
        assert classify_message("permission denied") is FailureKind.FATAL

    @pytest.mark.parametrize(
        "text",
        [
            "fatal: unable to access 'https://github.com/o/r.git/': Could not resolve host: github.com",
            "ssh: connect to host github.com port 22: Connection refused",
            "operation timed out, check network connectivity",
            "Connection reset by peer",
        ],
    )
    def test_connectivity_failures_are_transient(self, text):
        """Test DNS, connection and timeout failures are transient."""
        assert classify_message(text) is FailureKind.TRANSIENT

    @pytest.mark.parametrize(
        "text",
        [
            "fatal: tag 'v1.0' already exists",
            "error: failed to push some refs (non-fast-forward)",
            "",
        ],
    )
    def test_other_failures_are_fatal(self, text):
        """Test everything else is fatal."""
        assert classify_message(text) is FailureKind.FATAL

    def test_retry_gate(self):
        """Test the retry gate matches its markers case-insensitively."""
        assert is_retryable_message("Request TIMEOUT")
        assert is_retryable_message("fatal: unable to access repo")
        assert not is_retryable_message("remote rejected")


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self):
        """Test default policy values."""
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.delay == 1.5

    def test_rejects_zero_attempts(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_from_settings_git(self, settings):
        """Test git operations use the git command timeout."""
        policy = RetryPolicy.from_settings(settings, OperationClass.GIT)
        assert policy.max_attempts == 3
        assert policy.delay == 0
        assert policy.timeout == 5.0

    def test_from_settings_http(self, settings):
        """Test HTTP operations use the network timeout."""
        policy = RetryPolicy.from_settings(settings, OperationClass.HTTP)
        assert policy.timeout == 2.0


class TestRetryOrchestrator:
    """Tests for RetryOrchestrator.run."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("attempts", [1, 2, 3, 5])
    async def test_always_transient_attempted_n_times(self, recording_sleep, attempts):
        """Test a persistently transient unit is attempted exactly n times."""
        failures = [transient(f"network timeout #{i}") for i in range(1, attempts + 1)]
        work = ScriptedWork(*failures)
        orchestrator = RetryOrchestrator(sleep=recording_sleep)

        with pytest.raises(OperationFailure) as exc_info:
            await orchestrator.run(work, RetryPolicy(max_attempts=attempts, delay=0))

        assert work.calls == attempts
        assert exc_info.value is failures[-1]
        assert len(recording_sleep.delays) == attempts - 1

    @pytest.mark.asyncio
    async def test_fatal_attempted_once(self, recording_sleep):
        """Test a fatal failure is never retried."""
        work = ScriptedWork(fatal(), "unreachable")
        orchestrator = RetryOrchestrator(sleep=recording_sleep)

        with pytest.raises(OperationFailure) as exc_info:
            await orchestrator.run(work, RetryPolicy(max_attempts=5, delay=0))

        assert work.calls == 1
        assert exc_info.value.kind is FailureKind.FATAL
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [1, 2, 3])
    async def test_success_on_attempt_k(self, recording_sleep, k):
        """Test a unit succeeding on attempt k runs exactly k times."""
        work = ScriptedWork(*([transient()] * (k - 1)), "ok", "never")
        orchestrator = RetryOrchestrator(sleep=recording_sleep)

        result = await orchestrator.run(work, RetryPolicy(max_attempts=3, delay=0))

        assert result == "ok"
        assert work.calls == k

    @pytest.mark.asyncio
    async def test_transient_not_matching_gate_is_not_retried(self, recording_sleep):
        """Test transient failures whose text fails the gate surface immediately."""
        work = ScriptedWork(transient("connection refused"), "ok")
        orchestrator = RetryOrchestrator(sleep=recording_sleep)

        with pytest.raises(OperationFailure):
            await orchestrator.run(work, RetryPolicy(max_attempts=3, delay=0))
        assert work.calls == 1

    @pytest.mark.asyncio
    async def test_cancel_before_second_attempt(self):
        """Test cancelling during the delay prevents attempt 2 from starting."""
        token = CancellationToken()
        work = ScriptedWork(transient(), "ok")

        async def cancelling_sleep(delay):
            token.cancel()

        orchestrator = RetryOrchestrator(sleep=cancelling_sleep)

        with pytest.raises(OperationCancelled):
            await orchestrator.run(work, RetryPolicy(max_attempts=3, delay=0), token)

        assert work.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_before_first_attempt(self):
        """Test an already-cancelled token runs nothing."""
        token = CancellationToken()
        token.cancel()
        work = ScriptedWork("ok")

        with pytest.raises(OperationCancelled):
            await RetryOrchestrator().run(work, RetryPolicy(), token)
        assert work.calls == 0

    @pytest.mark.asyncio
    async def test_network_timeout_scenario(self, recording_sleep):
        """Test two network timeouts then success: 3 attempts, 2 sleeps."""
        work = ScriptedWork(transient("network timeout"), transient("network timeout"), "pushed")
        orchestrator = RetryOrchestrator(sleep=recording_sleep)

        result = await orchestrator.run(work, RetryPolicy(max_attempts=3, delay=0))

        assert result == "pushed"
        assert work.calls == 3
        assert recording_sleep.delays == [0, 0]
        assert sum(recording_sleep.delays) == pytest.approx(2 * 0)

    @pytest.mark.asyncio
    async def test_retries_are_logged(self, recording_sleep):
        """Test every retried attempt leaves a warning and giving up does not."""
        work = ScriptedWork(transient("network timeout"), transient("network timeout"), "pushed")

        with LogCapture("gitdeck.invocation") as capture:
            await RetryOrchestrator(sleep=recording_sleep).run(work, RetryPolicy(max_attempts=3, delay=0))

        warnings = [r.getMessage() for r in capture.records if r.levelname == "WARNING"]
        assert len(warnings) == 2
        assert warnings[0].startswith("Attempt 1/3 failed: network timeout")
        assert warnings[1].startswith("Attempt 2/3 failed")

    @pytest.mark.asyncio
    async def test_fixed_delay(self, recording_sleep):
        """Test every retry waits the same configured delay."""
        work = ScriptedWork(transient(), transient(), transient())
        orchestrator = RetryOrchestrator(sleep=recording_sleep)

        with pytest.raises(OperationFailure):
            await orchestrator.run(work, RetryPolicy(max_attempts=3, delay=1.5))
        assert recording_sleep.delays == [1.5, 1.5]

    @pytest.mark.asyncio
    async def test_on_attempt_callback(self, recording_sleep):
        """Test the attempt callback sees each attempt number."""
        seen = []
        work = ScriptedWork(transient(), "ok")

        await RetryOrchestrator(sleep=recording_sleep).run(
            work,
            RetryPolicy(max_attempts=4, delay=0),
            on_attempt=lambda attempt, total: seen.append((attempt, total)),
        )
        assert seen == [(1, 4), (2, 4)]

    @pytest.mark.asyncio
    async def test_unexpected_exceptions_propagate(self):
        """Test non-OperationFailure exceptions are not retried."""
        work = ScriptedWork(RuntimeError("bug"))

        with pytest.raises(RuntimeError):
            await RetryOrchestrator().run(work, RetryPolicy(max_attempts=3, delay=0))
        assert work.calls == 1


class TestOutcome:
    """Tests for RetryOrchestrator.outcome."""

    @pytest.mark.asyncio
    async def test_success_outcome(self):
        """Test a successful run yields Success."""
        outcome = await RetryOrchestrator().outcome(ScriptedWork("done"), RetryPolicy())
        assert isinstance(outcome, Success)
        assert outcome.ok
        assert outcome.output == "done"

    @pytest.mark.asyncio
    async def test_failure_outcome(self, recording_sleep):
        """Test an exhausted run yields Failure with the last message."""
        work = ScriptedWork(transient("network timeout 1"), transient("network timeout 2"))
        outcome = await RetryOrchestrator(sleep=recording_sleep).outcome(
            work, RetryPolicy(max_attempts=2, delay=0)
        )
        assert isinstance(outcome, Failure)
        assert not outcome.ok
        assert outcome.kind is FailureKind.TRANSIENT
        assert outcome.message == "network timeout 2"
