"""Run blocking database work off the event loop, retrying stale statements.

Work handed to :class:`BlockingExecutor` runs on a dedicated thread pool so a
synchronous SQLAlchemy call never blocks the asyncio scheduler.

Only work wrapped in :class:`RetrySafe` is retried, and only once, when the
backend reports that a prepared statement vanished underneath it. Wrap a
callable in ``RetrySafe`` only when running it twice is harmless (plain reads,
deletes, exact-match updates, upserts of fixed values). Anything that mints
fresh random values must be passed as a bare callable so it runs exactly once.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

import structlog

from spoticord.errors import is_transient, translate_error

logger = structlog.get_logger()

R = TypeVar("R")


@dataclass(frozen=True)
class RetrySafe(Generic[R]):
    """Marks a unit of work as idempotent, so it may run a second time."""

    fn: Callable[[], R]
    name: str = "unit_of_work"

    def __call__(self) -> R:
        return self.fn()


Work = Union[RetrySafe[R], Callable[[], R]]


class BlockingExecutor:
    """Thread pool for blocking database calls with a one-shot retry policy."""

    def __init__(self, max_workers: int = 1, transient_signature: str = "") -> None:
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="spoticord-db"
        )
        self.transient_signature = transient_signature

    async def _submit(self, fn: Callable[[], R]) -> R:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, fn)

    async def run(self, work: Work[R]) -> R:
        """Run ``work`` on the pool and return its result.

        Raises the translated store error when the work fails. ``RetrySafe``
        work that fails with the transient signature is resubmitted once and
        its second outcome is returned or raised as is.
        """
        try:
            return await self._submit(work)
        except Exception as exc:
            if not (isinstance(work, RetrySafe) and is_transient(exc, self.transient_signature)):
                translated = translate_error(exc, self.transient_signature)
                if translated is exc:
                    raise
                raise translated from exc
            logger.info("prepared_statement_retry", work=work.name)

        try:
            return await self._submit(work)
        except Exception as exc:
            if is_transient(exc, self.transient_signature):
                logger.warning("prepared_statement_retry_exhausted", work=work.name)
            translated = translate_error(exc, self.transient_signature)
            if translated is exc:
                raise
            raise translated from exc

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True)
