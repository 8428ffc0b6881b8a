"""Tests del ejecutor de reintentos."""

import pytest
from sqlalchemy.exc import IntegrityError

from toollife_api.resilience import RetryConfig, RetryExecutor


def _integrity_error() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))


@pytest.fixture
def config() -> RetryConfig:
    return RetryConfig(max_attempts=3, base_delay=0.0, jitter=False, retryable_exceptions=(IntegrityError,))


class TestRetryExecutor:
    def test_retries_until_success_and_calls_hook(self, config):
        attempts = []
        hooks = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise _integrity_error()
            return "ok"

        result = RetryExecutor(config).execute(flaky, on_retry=lambda n, exc: hooks.append(n))

        assert result == "ok"
        assert len(attempts) == 3
        assert hooks == [1, 2]

    def test_exhausted_attempts_reraise(self, config):
        def always_fails():
            raise _integrity_error()

        with pytest.raises(IntegrityError):
            RetryExecutor(config).execute(always_fails)

    def test_non_retryable_error_propagates_immediately(self, config):
        calls = []

        def boom():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            RetryExecutor(config).execute(boom)
        assert calls == [1]

    def test_delay_is_capped(self):
        cfg = RetryConfig(base_delay=0.5, max_delay=1.0, jitter=False)
        assert cfg.calculate_delay(1) == 0.5
        assert cfg.calculate_delay(5) == 1.0
