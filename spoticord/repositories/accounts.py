"""Linked Spotify accounts and the access token refresh protocol."""

from __future__ import annotations

import asyncio
import weakref
from datetime import datetime, timedelta

import structlog
from sqlalchemy import delete, update

from spoticord.errors import NotFound, RefreshTokenFailure
from spoticord.models.account import Account
from spoticord.models.base import utcnow
from spoticord.repositories.base import Repository, dialect_insert
from spoticord.retry import RetrySafe
from spoticord.spotify_oauth import SpotifyOAuth, SpotifyTokens

logger = structlog.get_logger()


class AccountRepository(Repository):
    def __init__(
        self,
        session_factory,
        executor,
        oauth: SpotifyOAuth,
        refresh_margin: timedelta = timedelta(minutes=1),
    ) -> None:
        super().__init__(session_factory, executor)
        self.oauth = oauth
        self.refresh_margin = refresh_margin
        self._refresh_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def get(self, user_id: str) -> Account:
        def work() -> Account:
            with self.session_factory() as session:
                account = session.get(Account, user_id)
                if account is None:
                    raise NotFound(f"no account linked for user {user_id}")
                return account

        return await self.executor.run(RetrySafe(work, "get_account"))

    async def upsert(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        expires: datetime,
        username: str | None = None,
    ) -> Account:
        """Insert or replace the user's linked account.

        Used by the linking flow once Spotify hands out the first tokens.
        The user row must already exist.
        """
        now = utcnow()
        values = {
            "username": username,
            "access_token": access_token,
            "refresh_token": refresh_token,
            "expires": expires,
            "last_updated": now,
            # A relinked account starts without a session
            "session_token": None,
        }

        def work() -> None:
            with self.session_factory() as session:
                stmt = dialect_insert(session, Account).values(user_id=user_id, **values)
                stmt = stmt.on_conflict_do_update(index_elements=["user_id"], set_=values)
                session.execute(stmt)
                session.commit()

        await self.executor.run(RetrySafe(work, "upsert_account"))
        logger.info("account_linked", user_id=user_id, username=username)
        return Account(user_id=user_id, **values)

    async def delete(self, user_id: str) -> int:
        def work() -> int:
            with self.session_factory() as session:
                result = session.execute(delete(Account).where(Account.user_id == user_id))
                session.commit()
                return result.rowcount

        return await self.executor.run(RetrySafe(work, "delete_account"))

    async def update_session_token(self, user_id: str, session_token: str | None) -> int:
        """Set or clear the auxiliary session token."""
        now = utcnow()

        def work() -> int:
            with self.session_factory() as session:
                result = session.execute(
                    update(Account)
                    .where(Account.user_id == user_id)
                    .values(session_token=session_token, last_updated=now)
                )
                session.commit()
                return result.rowcount

        return await self.executor.run(RetrySafe(work, "update_session_token"))

    async def get_access_token(self, user_id: str) -> str:
        """Return a usable Spotify access token for the user.

        A token that expires within ``refresh_margin`` is exchanged for a new
        one using the stored refresh token, and the new credentials are
        persisted before being returned. If Spotify refuses the refresh token
        the account is removed and RefreshTokenFailure is raised: the user
        has to link again.

        Refreshes for the same user are serialized within the process, and
        the row is re-read under the lock so a waiting caller picks up the
        token the previous holder just stored. When the holder's refresh
        fails, it alone sees RefreshTokenFailure; callers that were waiting
        on the lock find the account already removed and get NotFound.

        Raises:
            NotFound: The user has no linked account (including when a
                concurrent refresh just discarded it).
            RefreshTokenFailure: The refresh token is no longer valid.
        """
        async with self._refresh_lock(user_id):
            account = await self.get(user_id)
            if not account.is_expiring(self.refresh_margin):
                return account.access_token

            tokens = await self._exchange_refresh_token(account)
            if tokens.expires_at is None:
                raise RuntimeError("Spotify token response is missing expires_at")

            await self._store_tokens(
                user_id,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token or account.refresh_token,
                expires=tokens.expires_at,
            )
            logger.info(
                "account_token_refreshed",
                user_id=user_id,
                expires=tokens.expires_at.isoformat(),
                rotated=tokens.refresh_token is not None,
            )
            return tokens.access_token

    def _refresh_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._refresh_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._refresh_locks[user_id] = lock
        return lock

    async def _exchange_refresh_token(self, account: Account) -> SpotifyTokens:
        try:
            tokens = await self.oauth.refresh_access_token(account.refresh_token)
        except Exception as e:
            logger.warning("account_refresh_exchange_error", user_id=account.user_id, error=str(e))
            tokens = None

        if tokens is None:
            await self._discard_account(account.user_id)
            raise RefreshTokenFailure(
                f"could not refresh the Spotify token for user {account.user_id}"
            )
        return tokens

    async def _discard_account(self, user_id: str) -> None:
        """Fire-and-forget removal of an account whose refresh token is dead.

        Never raises: a failed cleanup is logged and the caller carries on
        with its own error.
        """
        try:
            await self.delete(user_id)
            logger.info("account_discarded", user_id=user_id)
        except Exception as e:
            logger.warning("account_discard_failed", user_id=user_id, error=str(e))

    async def _store_tokens(
        self, user_id: str, access_token: str, refresh_token: str, expires: datetime
    ) -> None:
        now = utcnow()

        def work() -> None:
            with self.session_factory() as session:
                session.execute(
                    update(Account)
                    .where(Account.user_id == user_id)
                    .values(
                        access_token=access_token,
                        refresh_token=refresh_token,
                        expires=expires,
                        last_updated=now,
                    )
                )
                session.commit()

        await self.executor.run(RetrySafe(work, "store_account_tokens"))
