import pytest

from contentful_ops.api.errors import (
    ContentfulError,
    NotFoundError,
    RateLimitError,
    RetriesExhaustedError,
)
from contentful_ops.api.retry import backoff_delay, is_rate_limit_error, with_retry


class Flaky:
    """Raises the queued errors in order, then returns `result`."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_succeeds_on_third_attempt_after_two_rate_limits(sleeps, fake_sleep):
    action = Flaky([RateLimitError(), RateLimitError()], result={"sys": {"id": "abc"}})

    result = with_retry(action, "update-entry-abc", max_attempts=3, base_delay=1.0, max_delay=30.0, sleep=fake_sleep)

    assert result == {"sys": {"id": "abc"}}
    assert action.calls == 3
    assert sleeps == [1.0, 2.0]


def test_exhausted_budget_names_operation_and_attempts(sleeps, fake_sleep):
    action = Flaky([RateLimitError()] * 3)

    with pytest.raises(RetriesExhaustedError) as exc_info:
        with_retry(action, "publish-entry-xyz", max_attempts=3, base_delay=1.0, sleep=fake_sleep)

    assert action.calls == 3
    assert exc_info.value.operation == "publish-entry-xyz"
    assert exc_info.value.attempts == 3
    assert "publish-entry-xyz" in str(exc_info.value)
    assert "3 attempts" in str(exc_info.value)
    assert isinstance(exc_info.value.last_error, RateLimitError)
    # no sleep after the final attempt
    assert len(sleeps) == 2


def test_non_rate_limit_error_propagates_immediately(sleeps, fake_sleep):
    action = Flaky([NotFoundError()])

    with pytest.raises(NotFoundError):
        with_retry(action, "get-entry-missing", sleep=fake_sleep)

    assert action.calls == 1
    assert sleeps == []


def test_delay_is_capped(sleeps, fake_sleep):
    action = Flaky([RateLimitError()] * 6)

    with_retry(action, "op", max_attempts=7, base_delay=2.0, max_delay=30.0, sleep=fake_sleep)

    assert sleeps == [2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


def test_backoff_delay():
    assert backoff_delay(0, 2.0, 30.0) == 2.0
    assert backoff_delay(3, 2.0, 30.0) == 16.0
    assert backoff_delay(10, 2.0, 30.0) == 30.0


def test_is_rate_limit_error_recognises_status_and_error_id():
    assert is_rate_limit_error(RateLimitError())
    assert is_rate_limit_error(ContentfulError("slow down", status=429))
    assert is_rate_limit_error(ContentfulError("slow down", error_id="RateLimitExceeded"))
    assert not is_rate_limit_error(ContentfulError("boom", status=500))
    assert not is_rate_limit_error(ValueError("nope"))
