"""Tests for BlockingExecutor's one-shot retry of stale prepared statements."""

from __future__ import annotations

import pytest
from sqlalchemy import exc as sa_exc

from spoticord.errors import (
    BackendError,
    Conflict,
    PoolExhausted,
    TransientBackendError,
    is_transient,
    translate_error,
)
from spoticord.retry import BlockingExecutor, RetrySafe

SIGNATURE = "unnamed prepared statement does not exist"


def _stale_statement_error() -> sa_exc.OperationalError:
    return sa_exc.OperationalError(
        "SELECT 1", {}, Exception(f"ERROR:  {SIGNATURE}")
    )


class CountingWork:
    """Callable that raises the queued errors in order, then returns ``result``."""

    def __init__(self, *errors: Exception, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.fixture
def executor():
    executor = BlockingExecutor(max_workers=1, transient_signature=SIGNATURE)
    yield executor
    executor.shutdown()


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_success_runs_once(executor):
    work = CountingWork()
    assert await executor.run(RetrySafe(work)) == "ok"
    assert work.calls == 1


@pytest.mark.asyncio
async def test_transient_failure_then_success_is_retried(executor):
    work = CountingWork(_stale_statement_error())

    result = await executor.run(RetrySafe(work))

    assert result == "ok"
    assert work.calls == 2


@pytest.mark.asyncio
async def test_transient_failure_twice_raises_second_error(executor):
    first, second = _stale_statement_error(), _stale_statement_error()
    work = CountingWork(first, second)

    with pytest.raises(TransientBackendError) as excinfo:
        await executor.run(RetrySafe(work))

    assert work.calls == 2
    assert excinfo.value.__cause__ is second


@pytest.mark.asyncio
async def test_other_error_is_not_retried(executor):
    work = CountingWork(ValueError("boom"))

    with pytest.raises(ValueError, match="boom"):
        await executor.run(RetrySafe(work))

    assert work.calls == 1


@pytest.mark.asyncio
async def test_other_database_error_is_not_retried(executor):
    error = sa_exc.OperationalError("SELECT 1", {}, Exception("connection reset"))
    work = CountingWork(error)

    with pytest.raises(BackendError) as excinfo:
        await executor.run(RetrySafe(work))

    assert not isinstance(excinfo.value, TransientBackendError)
    assert work.calls == 1


@pytest.mark.asyncio
async def test_transient_then_other_error_propagates_other(executor):
    work = CountingWork(_stale_statement_error(), ValueError("second"))

    with pytest.raises(ValueError, match="second"):
        await executor.run(RetrySafe(work))

    assert work.calls == 2


@pytest.mark.asyncio
async def test_one_shot_work_is_never_retried(executor):
    work = CountingWork(_stale_statement_error())

    with pytest.raises(TransientBackendError):
        await executor.run(work)

    assert work.calls == 1


@pytest.mark.asyncio
async def test_empty_signature_disables_retry():
    executor = BlockingExecutor(max_workers=1, transient_signature="")
    work = CountingWork(_stale_statement_error())
    try:
        with pytest.raises(BackendError):
            await executor.run(RetrySafe(work))
    finally:
        executor.shutdown()

    assert work.calls == 1


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def test_is_transient_matches_driver_message():
    assert is_transient(_stale_statement_error(), SIGNATURE)
    assert not is_transient(_stale_statement_error(), "something else")
    assert not is_transient(ValueError(SIGNATURE), SIGNATURE)


def test_translate_integrity_error():
    error = sa_exc.IntegrityError("INSERT", {}, Exception("duplicate key"))
    assert isinstance(translate_error(error, SIGNATURE), Conflict)


def test_translate_pool_timeout():
    error = sa_exc.TimeoutError("QueuePool limit of size 1 overflow 0 reached")
    assert isinstance(translate_error(error, SIGNATURE), PoolExhausted)


def test_translate_passes_through_unrelated_errors():
    error = KeyError("x")
    assert translate_error(error, SIGNATURE) is error
