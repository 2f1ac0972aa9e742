"""
Tests for database retry utilities.

Tests cover:
- Transient error and version conflict detection
- Backoff delays with max delay cap
- db_retry decorator behavior
- retry_on_conflict retry budget and jittered waits
"""

import pytest
from unittest.mock import MagicMock, patch
from sqlalchemy.exc import IntegrityError, OperationalError

from inkwell.core.db_utils import (
    backoff_delays,
    db_retry,
    is_transient_error,
    is_version_conflict,
    retry_on_conflict,
)


def _conflict() -> IntegrityError:
    return IntegrityError(
        "INSERT INTO post_version", {}, Exception("UNIQUE constraint failed: post_version.post_id, post_version.version")
    )


class TestErrorDetection:
    @pytest.mark.parametrize("error_msg", [
        "database is locked",
        "server closed the connection unexpectedly",
        "Connection refused",
    ])
    def test_transient_errors_detected(self, error_msg):
        assert is_transient_error(OperationalError("SELECT 1", {}, Exception(error_msg)))

    def test_syntax_error_is_not_transient(self):
        assert not is_transient_error(OperationalError("SELECT", {}, Exception("syntax error")))

    def test_version_conflict_detected(self):
        assert is_version_conflict(_conflict())

    def test_other_integrity_error_is_not_a_conflict(self):
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: post.slug"))
        assert not is_version_conflict(error)


class TestBackoffDelays:
    def test_doubles_and_caps(self):
        assert list(backoff_delays(5, 0.5, 3.0)) == [0.5, 1.0, 2.0, 3.0, 3.0]

    def test_zero_retries(self):
        assert list(backoff_delays(0, 0.5, 3.0)) == []


class TestDbRetry:
    def test_retries_transient_error(self):
        calls = MagicMock(side_effect=[OperationalError("SELECT", {}, Exception("database is locked")), "ok"])

        @db_retry(max_retries=2, base_delay=0.01)
        def work():
            return calls()

        with patch("inkwell.core.db_utils.time.sleep") as sleep:
            assert work() == "ok"
        assert calls.call_count == 2
        sleep.assert_called_once_with(0.01)

    def test_non_transient_error_raised_immediately(self):
        calls = MagicMock(side_effect=OperationalError("SELECT", {}, Exception("no such table: post")))

        @db_retry(max_retries=3)
        def work():
            return calls()

        with pytest.raises(OperationalError):
            work()
        assert calls.call_count == 1


class TestRetryOnConflict:
    def test_retries_until_success_with_jittered_waits(self):
        func = MagicMock(side_effect=[_conflict(), _conflict(), "done"])
        rollback = MagicMock()

        with patch("inkwell.core.db_utils.time.sleep") as sleep:
            result = retry_on_conflict(func, attempts=5, on_conflict=rollback, base_delay=0.1, max_delay=1.0)

        assert result == "done"
        assert rollback.call_count == 2
        assert sleep.call_count == 2
        first, second = (call.args[0] for call in sleep.call_args_list)
        assert 0 <= first <= 0.1
        assert 0 <= second <= 0.2

    def test_gives_up_after_budget(self):
        func = MagicMock(side_effect=_conflict())
        rollback = MagicMock()

        with patch("inkwell.core.db_utils.time.sleep") as sleep:
            with pytest.raises(IntegrityError):
                retry_on_conflict(func, attempts=3, on_conflict=rollback)

        assert func.call_count == 3
        assert rollback.call_count == 3
        assert sleep.call_count == 2

    def test_other_integrity_error_not_retried(self):
        error = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        func = MagicMock(side_effect=error)
        rollback = MagicMock()

        with pytest.raises(IntegrityError):
            retry_on_conflict(func, attempts=5, on_conflict=rollback)

        assert func.call_count == 1
        rollback.assert_called_once()

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError):
            retry_on_conflict(MagicMock(), attempts=0, on_conflict=MagicMock())
