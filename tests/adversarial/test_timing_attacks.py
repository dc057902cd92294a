"""
Adversarial tests for timing oracle attack prevention.

Verifies that the login failure modes cost the same bcrypt work, so an
attacker cannot tell "email not registered" from "wrong password" by
measuring response time. Recovery requests for a registered email hand
the mail off to a task queue and answer as fast as for an unknown one.

Security rationale:
- Timing oracle attacks measure response time differences to infer secrets
- A login that returns early for an unknown email leaks account existence
- Our defense: run one bcrypt comparison on every login attempt, against a
  dummy hash when the account does not exist
- For forgot-password and resend-verification: defer the token write and
  the mail relay round-trip, so both emails cost one lookup
"""

import statistics
import time
from dataclasses import replace
from unittest.mock import patch

import bcrypt
import pytest

from gatekeep.domain.results import Err

pytestmark = pytest.mark.adversarial


class SlowNotifier:
    """Mail relay that takes DELAY seconds per message."""

    DELAY = 0.05

    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        time.sleep(self.DELAY)
        self.sent.append(to_address)


@pytest.fixture
def registered(open_lifecycle) -> str:
    open_lifecycle.register("victim@example.com", "secure123")
    return "victim@example.com"


class TestTimingAttacks:
    """
    Verify login failure modes are statistically indistinguishable.

    Thresholds are loose; bcrypt at cost 10 dominates each call, so the
    medians of both modes sit close together on any machine.
    """

    ITERATIONS = 10
    MAX_VARIANCE_RATIO = 0.50

    def measure(self, call) -> list[float]:
        times = []
        for _ in range(self.ITERATIONS):
            start = time.perf_counter()
            call()
            times.append(time.perf_counter() - start)
        return times

    def assert_timing_similar(
        self, times1: list[float], times2: list[float], label1: str, label2: str
    ) -> None:
        median1 = statistics.median(times1)
        median2 = statistics.median(times2)
        ratio = abs(median1 - median2) / max(median1, median2)

        assert ratio < self.MAX_VARIANCE_RATIO, (
            f"Timing difference too large between {label1} and {label2}: "
            f"{ratio:.1%} (threshold: {self.MAX_VARIANCE_RATIO:.0%})\n"
            f"  {label1}: median={median1:.4f}s\n"
            f"  {label2}: median={median2:.4f}s"
        )

    def test_unknown_email_timing_similar_to_wrong_password(self, sessions, registered) -> None:
        unknown = self.measure(lambda: sessions.login("nobody@example.com", "wrongpass"))
        wrong = self.measure(lambda: sessions.login(registered, "wrongpass"))

        self.assert_timing_similar(unknown, wrong, "unknown email", "wrong password")

    def test_unknown_email_still_costs_bcrypt_time(self, sessions) -> None:
        """
        Non-existent email should still take bcrypt-comparable time.

        bcrypt with cost 10 takes tens of milliseconds; a lookup alone
        would take microseconds.
        """
        times = self.measure(lambda: sessions.login("nobody@example.com", "anypassword"))

        assert statistics.median(times) > 0.010, (
            "Unknown email response too fast - dummy bcrypt comparison may not be running."
        )

    @pytest.mark.parametrize("operation", ["forgot_password", "resend_verification"])
    def test_recovery_answers_before_mail_is_sent(
        self, lifecycle, notifier, deferred_tasks, operation: str
    ) -> None:
        """
        A known email must not answer slower than an unknown one.

        The mail relay is made slow; the answer for a registered address
        still returns well inside one relay round-trip, and the delivery
        runs only when the queued work does.
        """
        lifecycle.register("victim@example.com", "secure123")
        slow = replace(lifecycle, notifier=SlowNotifier())
        call = getattr(slow, operation)

        known = self.measure(lambda: call("victim@example.com", tasks=deferred_tasks))
        unknown = self.measure(lambda: call("nobody@example.com", tasks=deferred_tasks))

        assert call("victim@example.com") == call("nobody@example.com")
        assert statistics.median(known) < SlowNotifier.DELAY / 2
        assert statistics.median(unknown) < SlowNotifier.DELAY / 2
        assert len(deferred_tasks.pending) == self.ITERATIONS
        assert slow.notifier.sent == ["victim@example.com"]

        deferred_tasks.run()

        assert len(slow.notifier.sent) == self.ITERATIONS + 1


class TestConstantTimeOperations:
    """Verify the same cryptographic work runs on every login path."""

    def test_one_bcrypt_comparison_per_failure_mode(self, sessions, registered) -> None:
        with patch("gatekeep.domain.passwords.bcrypt.checkpw", wraps=bcrypt.checkpw) as spy:
            unknown = sessions.login("nobody@example.com", "wrongpass")
            unknown_calls = spy.call_count
            spy.reset_mock()
            wrong = sessions.login(registered, "wrongpass")
            wrong_calls = spy.call_count

        assert isinstance(unknown, Err)
        assert isinstance(wrong, Err)
        assert unknown_calls == wrong_calls == 1

    def test_failure_modes_return_identical_results(self, sessions, registered) -> None:
        assert sessions.login("nobody@example.com", "x") == sessions.login(registered, "x")
