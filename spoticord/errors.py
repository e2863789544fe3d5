"""Store error taxonomy and translation of SQLAlchemy failures."""

from __future__ import annotations

from sqlalchemy import exc as sa_exc


class StoreError(Exception):
    """Base class for every error raised by the credential store."""


class NotFound(StoreError):
    """No row matched the lookup."""


class Conflict(StoreError):
    """A uniqueness constraint was violated."""


class PoolExhausted(StoreError):
    """No pooled connection became available before the pool timeout."""


class BackendError(StoreError):
    """Any other database failure. The driver exception is chained."""


class TransientBackendError(BackendError):
    """The backend dropped a prepared statement; safe to retry once."""


class RefreshTokenFailure(StoreError):
    """The refresh token could not be exchanged; the user has to link again."""


class MigrationFailure(StoreError):
    """Schema migrations could not be applied at startup."""


class StoreConnectionError(StoreError):
    """The database could not be reached while connecting the store."""


def is_transient(exc: BaseException, signature: str) -> bool:
    """Check whether ``exc`` is the stale prepared statement failure."""
    if isinstance(exc, TransientBackendError):
        return True
    if not signature:
        return False
    if isinstance(exc, sa_exc.DBAPIError):
        return signature in str(exc.orig)
    return False


def translate_error(exc: BaseException, signature: str) -> BaseException:
    """Map a SQLAlchemy exception onto the store taxonomy.

    Store errors and non-database exceptions are returned unchanged.
    """
    if isinstance(exc, StoreError):
        return exc
    if isinstance(exc, sa_exc.TimeoutError):
        return PoolExhausted(str(exc))
    if isinstance(exc, sa_exc.IntegrityError):
        return Conflict(str(exc.orig))
    if is_transient(exc, signature):
        return TransientBackendError(str(exc.orig))
    if isinstance(exc, sa_exc.SQLAlchemyError):
        return BackendError(str(exc))
    return exc
