"""Tests for the bounded retry helper."""

import pytest

from reflens_core.utils.retry import backoff_delays, retry


class Boom(Exception):
    pass


def _failing(times, result="ok"):
    calls = []

    def op(attempt):
        calls.append(attempt)
        if len(calls) <= times:
            raise Boom(f"failure {len(calls)}")
        return result

    return op, calls


class TestRetry:
    def test_returns_first_success_without_sleeping(self):
        sleeps = []
        op, calls = _failing(0)
        assert retry(op, sleep=sleeps.append) == "ok"
        assert calls == [1]
        assert sleeps == []

    def test_recovers_after_transient_failures(self):
        sleeps = []
        op, calls = _failing(2)
        assert retry(op, retries=3, delay_ms=1000, backoff=2, sleep=sleeps.append) == "ok"
        assert calls == [1, 2, 3]
        assert sleeps == [1.0, 2.0]

    def test_at_most_retries_plus_one_attempts(self):
        sleeps = []
        op, calls = _failing(10)
        with pytest.raises(Boom):
            retry(op, retries=3, delay_ms=1000, backoff=2, sleep=sleeps.append)
        assert calls == [1, 2, 3, 4]

    def test_waits_grow_exponentially(self):
        sleeps = []
        op, _ = _failing(10)
        with pytest.raises(Boom):
            retry(op, retries=3, delay_ms=1000, backoff=2, sleep=sleeps.append)
        # seconds between attempts 1→2, 2→3, 3→4
        assert sleeps == [1.0, 2.0, 4.0]

    def test_final_error_is_raised_unchanged(self):
        errors = []

        def op(attempt):
            err = Boom(f"attempt {attempt}")
            errors.append(err)
            raise err

        with pytest.raises(Boom) as exc_info:
            retry(op, retries=3, sleep=lambda s: None)
        assert exc_info.value is errors[-1]
        assert str(exc_info.value) == "attempt 4"

    def test_zero_retries_means_single_attempt(self):
        op, calls = _failing(1)
        with pytest.raises(Boom):
            retry(op, retries=0, sleep=lambda s: None)
        assert calls == [1]

    def test_logs_warning_per_failed_attempt(self, caplog):
        op, _ = _failing(1)
        with caplog.at_level("WARNING"):
            retry(op, retries=3, delay_ms=1000, sleep=lambda s: None)
        assert "Attempt 1/4 failed: failure 1. Retrying in 1000ms..." in caplog.text


def test_backoff_delays():
    assert backoff_delays(3, 1000, 2) == [1000, 2000, 4000]


def test_sleeps_follow_backoff_delays():
    op, _ = _failing(3)
    sleeps = []
    retry(op, retries=3, delay_ms=250, backoff=3, sleep=sleeps.append)
    assert sleeps == [d / 1000 for d in backoff_delays(3, 250, 3)]
