import pytest

from cache_mutex.config import RetrySettings
from cache_mutex.core.retry import BoundedRetry, NoRetry, build_retry_policy
from cache_mutex.errors import StoreError, TransientStoreError


class _Flaky:
    """Raises the queued errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr("cache_mutex.core.retry.time.sleep", calls.append)
    return calls


def test_no_retry_calls_once():
    op = _Flaky(TransientStoreError("IO timeout"))

    with pytest.raises(TransientStoreError):
        NoRetry().execute(op)

    assert op.calls == 1


def test_succeeds_after_transient_failures(sleeps):
    op = _Flaky(TransientStoreError("IO timeout"), TransientStoreError("IO timeout"))

    assert BoundedRetry(attempts=5, delay_s=30).execute(op) == "ok"
    assert op.calls == 3
    assert sleeps == [30, 30]


def test_exhaustion_raises_last_error(sleeps, log_lines):
    errors = [TransientStoreError(f"IO timeout #{i}") for i in range(5)]
    op = _Flaky(*errors)

    with pytest.raises(TransientStoreError, match="#4"):
        BoundedRetry().execute(op)

    assert op.calls == 5
    assert len(sleeps) == 4
    assert sum(line.startswith("WARNING|") for line in log_lines) == 4
    assert any(line.startswith("ERROR|") for line in log_lines)


def test_transient_error_not_matching_pattern_is_not_retried(sleeps):
    op = _Flaky(TransientStoreError("connection refused"))

    with pytest.raises(TransientStoreError, match="connection refused"):
        BoundedRetry().execute(op)

    assert op.calls == 1
    assert sleeps == []


def test_custom_pattern(sleeps):
    op = _Flaky(TransientStoreError("connection refused"))

    assert BoundedRetry(matching=r"connection|IO timeout", delay_s=1).execute(op) == "ok"
    assert sleeps == [1]


@pytest.mark.parametrize("error", [StoreError("IO timeout"), KeyError("x"), RuntimeError("IO timeout")])
def test_other_errors_propagate_immediately(sleeps, error):
    op = _Flaky(error)

    with pytest.raises(type(error)):
        BoundedRetry().execute(op)

    assert op.calls == 1


def test_invalid_settings():
    with pytest.raises(ValueError):
        BoundedRetry(attempts=0)
    with pytest.raises(ValueError):
        BoundedRetry(delay_s=-1)
    with pytest.raises(ValueError, match="valid regex"):
        BoundedRetry(matching="IO (")


def test_build_retry_policy():
    assert isinstance(build_retry_policy(RetrySettings(resilient=False)), NoRetry)

    policy = build_retry_policy(RetrySettings(attempts=2, delay_s=0.5, matching="timeout"))
    assert policy == BoundedRetry(attempts=2, delay_s=0.5, matching="timeout")
