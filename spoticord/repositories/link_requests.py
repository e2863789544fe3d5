"""Account link requests: one short-lived token per user."""

from __future__ import annotations

from datetime import timedelta

import structlog
from sqlalchemy import delete, select

from spoticord.errors import NotFound
from spoticord.models.base import utcnow
from spoticord.models.link_request import LinkRequest
from spoticord.repositories.base import Repository, dialect_insert
from spoticord.retry import RetrySafe
from spoticord.utils.tokens import generate_link_token

logger = structlog.get_logger()


class LinkRequestRepository(Repository):
    def __init__(
        self,
        session_factory,
        executor,
        ttl: timedelta = timedelta(hours=1),
        token_length: int = 64,
    ) -> None:
        super().__init__(session_factory, executor)
        self.ttl = ttl
        self.token_length = token_length

    async def get(self, user_id: str) -> LinkRequest:
        def work() -> LinkRequest:
            with self.session_factory() as session:
                request = session.get(LinkRequest, user_id)
                if request is None:
                    raise NotFound(f"no link request for user {user_id}")
                return request

        return await self.executor.run(RetrySafe(work, "get_link_request"))

    async def get_by_token(self, token: str) -> LinkRequest:
        """Resolve the token from a link URL back to its request."""

        def work() -> LinkRequest:
            with self.session_factory() as session:
                request = session.execute(
                    select(LinkRequest).where(LinkRequest.token == token)
                ).scalar_one_or_none()
                if request is None:
                    raise NotFound("no link request for token")
                return request

        return await self.executor.run(RetrySafe(work, "get_link_request_by_token"))

    async def create(self, user_id: str) -> LinkRequest:
        """Create or replace the user's link request.

        A fresh token is minted on every call, so this runs exactly once and
        a transient backend error reaches the caller instead of being retried.
        """

        def work() -> LinkRequest:
            token = generate_link_token(self.token_length)
            expires = utcnow() + self.ttl
            with self.session_factory() as session:
                stmt = dialect_insert(session, LinkRequest).values(
                    user_id=user_id, token=token, expires=expires
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id"],
                    set_={"token": token, "expires": expires},
                )
                session.execute(stmt)
                session.commit()
            return LinkRequest(user_id=user_id, token=token, expires=expires)

        request = await self.executor.run(work)
        logger.info("link_request_created", user_id=user_id, expires=request.expires.isoformat())
        return request

    async def delete(self, user_id: str) -> int:
        def work() -> int:
            with self.session_factory() as session:
                result = session.execute(
                    delete(LinkRequest).where(LinkRequest.user_id == user_id)
                )
                session.commit()
                return result.rowcount

        return await self.executor.run(RetrySafe(work, "delete_link_request"))
