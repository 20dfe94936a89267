"""Tests for the fixed-delay retry combinator."""
from unittest.mock import Mock

import pytest

from factor_worker.retry import retry_call


class TestRetryCall:
    def test_success_first_try(self):
        sleep = Mock()
        func = Mock(return_value="ok")

        result = retry_call(func, attempts=5, delay=10, sleep=sleep)

        assert result.succeeded
        assert result.value == "ok"
        assert result.attempts == 1
        func.assert_called_once()
        sleep.assert_not_called()

    def test_exhaustion_calls_exactly_attempts_times(self):
        sleep = Mock()
        func = Mock(side_effect=ConnectionError("refused"))

        result = retry_call(func, attempts=4, delay=10, retry_on=(ConnectionError,), sleep=sleep)

        assert not result.succeeded
        assert result.attempts == 4
        assert isinstance(result.error, ConnectionError)
        assert func.call_count == 4
        # No delay after the final attempt
        assert sleep.call_count == 3
        sleep.assert_called_with(10)

    def test_recovers_after_failures(self):
        func = Mock(side_effect=[ConnectionError(), ConnectionError(), "ok"])

        result = retry_call(func, attempts=5, delay=0, retry_on=(ConnectionError,), sleep=Mock())

        assert result.succeeded
        assert result.attempts == 3
        assert result.value == "ok"

    def test_success_predicate(self):
        func = Mock(side_effect=[500, 502, 200])

        result = retry_call(func, attempts=3, delay=1, is_success=lambda code: code == 200, sleep=Mock())

        assert result.succeeded
        assert result.value == 200

    def test_unsuccessful_values_keep_last_value(self):
        func = Mock(return_value=503)

        result = retry_call(func, attempts=2, delay=1, is_success=lambda code: code == 200, sleep=Mock())

        assert not result.succeeded
        assert result.value == 503
        assert result.error is None

    def test_non_retryable_exception_propagates(self):
        func = Mock(side_effect=KeyError("bug"))

        with pytest.raises(KeyError):
            retry_call(func, attempts=3, delay=0, retry_on=(ConnectionError,), sleep=Mock())
        func.assert_called_once()

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            retry_call(Mock(), attempts=0, delay=0)
