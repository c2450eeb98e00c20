import pytest

from app.core.exceptions import GatewayRequestRejectedError, GatewayTransientError
from app.services.payment import RetryPolicy


class Flaky:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


def test_first_success_does_not_sleep():
    sleeps = []
    fn = Flaky([])

    assert RetryPolicy(sleep=sleeps.append).run(fn) == "ok"
    assert fn.calls == 1
    assert sleeps == []


def test_retries_until_success():
    sleeps = []
    fn = Flaky([GatewayTransientError(), GatewayTransientError(), GatewayTransientError()])

    assert RetryPolicy(max_attempts=4, delay_seconds=1.0, sleep=sleeps.append).run(fn) == "ok"
    assert fn.calls == 4
    assert sleeps == [1.0, 1.0, 1.0]


def test_exhaustion_reraises_the_last_error():
    last = GatewayTransientError("still down")
    fn = Flaky([GatewayTransientError(), GatewayTransientError(), last])

    with pytest.raises(GatewayTransientError) as exc:
        RetryPolicy(max_attempts=3, sleep=lambda _: None).run(fn)

    assert exc.value is last
    assert fn.calls == 3


def test_non_retryable_errors_propagate_immediately():
    sleeps = []
    fn = Flaky([GatewayRequestRejectedError(), GatewayTransientError()])

    with pytest.raises(GatewayRequestRejectedError):
        RetryPolicy(sleep=sleeps.append).run(fn)

    assert fn.calls == 1
    assert sleeps == []


def test_backoff_grows_the_delay():
    sleeps = []
    fn = Flaky([GatewayTransientError()] * 3)

    RetryPolicy(max_attempts=4, delay_seconds=0.5, backoff=2.0, sleep=sleeps.append).run(fn)

    assert sleeps == [0.5, 1.0, 2.0]


def test_zero_delay_skips_sleeping():
    sleeps = []
    fn = Flaky([GatewayTransientError()])

    RetryPolicy(delay_seconds=0, sleep=sleeps.append).run(fn)

    assert fn.calls == 2
    assert sleeps == []


def test_custom_retry_on():
    fn = Flaky([ConnectionError(), ConnectionError()])
    policy = RetryPolicy(max_attempts=3, retry_on=(ConnectionError,), sleep=lambda _: None)
    assert policy.run(fn) == "ok"


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_from_settings(settings):
    policy = RetryPolicy.from_settings(settings)
    assert policy.max_attempts == 4
    assert policy.delay_seconds == 0
    assert policy.backoff == 1.0
