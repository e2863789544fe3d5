"""Shared plumbing for repositories."""

from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker

from spoticord.retry import BlockingExecutor


def dialect_insert(session: Session, model):
    """Return an INSERT construct that supports ``on_conflict_do_update``."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)


class Repository:
    """Holds the session factory and the executor every repository needs.

    Each unit of work opens its own session, so objects handed back to
    callers are detached copies that nothing else holds on to.
    """

    def __init__(
        self, session_factory: sessionmaker[Session], executor: BlockingExecutor
    ) -> None:
        self.session_factory = session_factory
        self.executor = executor
