"""
Tests for the storage retry helper and the status classification around it.
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from core.rpc import call_storage
from core.status import StatusCode, StatusError
from storage.errors import PasswordNotFound, UserAlreadyExists, UserNotFound
from storage.retry import RetryPolicy, is_transient, retry

FAST = RetryPolicy(max_attempts=4, initial_delay=0, delay_increment=0)


def _transient() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("server closed the connection"))


class Flaky:
    """Fails with *error* for the first *failures* calls, then returns *result*."""

    def __init__(self, failures: int, error=_transient, result="ok"):
        self.failures = failures
        self.error = error
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error()
        return self.result


@pytest.mark.parametrize("k", [1, 2, 4])
def test_succeeds_within_budget(k):
    fn = Flaky(failures=k - 1)

    assert asyncio.run(retry(FAST, fn)) == "ok"
    assert fn.calls == k


def test_gives_up_with_last_transient_error():
    fn = Flaky(failures=10)

    with pytest.raises(OperationalError):
        asyncio.run(retry(FAST, fn))
    assert fn.calls == FAST.max_attempts


def test_non_transient_error_is_not_retried():
    fn = Flaky(failures=3, error=lambda: ValueError("bad input"))

    with pytest.raises(ValueError, match="bad input"):
        asyncio.run(retry(FAST, fn))
    assert fn.calls == 1


def test_predicate_is_injectable():
    fn = Flaky(failures=2, error=lambda: KeyError("busy"))

    result = asyncio.run(retry(FAST, fn, is_transient=lambda exc: isinstance(exc, KeyError)))

    assert result == "ok"
    assert fn.calls == 3


def test_error_only_closure():
    fn = Flaky(failures=1, result=None)

    assert asyncio.run(retry(FAST, fn)) is None
    assert fn.calls == 2


def test_coroutine_function():
    fn = Flaky(failures=1)

    async def call():
        return fn()

    assert asyncio.run(retry(FAST, call)) == "ok"


def test_delay_schedule(monkeypatch):
    waits = []

    async def fake_sleep(delay):
        waits.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    policy = RetryPolicy(max_attempts=4, initial_delay=0.005, delay_increment=0.003)

    with pytest.raises(OperationalError):
        asyncio.run(retry(policy, Flaky(failures=10)))

    assert waits == pytest.approx([0.005, 0.008, 0.011])


def test_cancellation_interrupts_the_wait():
    fn = Flaky(failures=10)
    policy = RetryPolicy(max_attempts=5, initial_delay=60, delay_increment=0)

    async def scenario():
        task = asyncio.create_task(retry(policy, fn))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(asyncio.wait_for(scenario(), timeout=5))
    assert fn.calls == 1


def test_default_predicate():
    assert is_transient(_transient())
    assert not is_transient(ValueError())


# ---------------------------------------------------------------------------
# call_storage
# ---------------------------------------------------------------------------


def _raise(exc):
    def fn():
        raise exc
    return fn


@pytest.mark.parametrize(
    "error, code, detail",
    [
        (PasswordNotFound("abc"), StatusCode.UNKNOWN, "unknown PasswordID abc"),
        (UserNotFound("u1"), StatusCode.UNKNOWN, "unknown UserID u1"),
        (UserAlreadyExists("alice"), StatusCode.ALREADY_EXISTS, "user alice already exists"),
        (RuntimeError("disk on fire"), StatusCode.INTERNAL, "internal storage error"),
    ],
)
def test_call_storage_classifies(error, code, detail):
    with pytest.raises(StatusError) as info:
        asyncio.run(call_storage(FAST, _raise(error)))

    assert info.value.code is code
    assert info.value.detail == detail


def test_call_storage_retries_transient_errors():
    fn = Flaky(failures=2)

    assert asyncio.run(call_storage(FAST, fn)) == "ok"
    assert fn.calls == 3
