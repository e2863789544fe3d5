"""Discord user persistence."""

from __future__ import annotations

import structlog
from sqlalchemy import delete, update

from spoticord.errors import Conflict, NotFound
from spoticord.models.user import User
from spoticord.repositories.base import Repository
from spoticord.retry import RetrySafe

logger = structlog.get_logger()


class UserRepository(Repository):
    async def get(self, user_id: str) -> User:
        """Return the user, or raise NotFound."""

        def work() -> User:
            with self.session_factory() as session:
                user = session.get(User, user_id)
                if user is None:
                    raise NotFound(f"user {user_id} not found")
                return user

        return await self.executor.run(RetrySafe(work, "get_user"))

    async def create(self, user_id: str) -> User:
        """Insert a new user. Raises Conflict if the id is taken."""

        def work() -> User:
            with self.session_factory() as session:
                user = User(id=user_id, device_name=None)
                session.add(user)
                session.commit()
                return user

        user = await self.executor.run(RetrySafe(work, "create_user"))
        logger.info("user_created", user_id=user_id)
        return user

    async def get_or_create(self, user_id: str) -> User:
        try:
            return await self.get(user_id)
        except NotFound:
            pass

        try:
            return await self.create(user_id)
        except Conflict:
            # Another caller created it between our read and insert
            return await self.get(user_id)

    async def delete(self, user_id: str) -> int:
        """Delete the user (cascades to account and link request)."""

        def work() -> int:
            with self.session_factory() as session:
                result = session.execute(delete(User).where(User.id == user_id))
                session.commit()
                return result.rowcount

        return await self.executor.run(RetrySafe(work, "delete_user"))

    async def update_device_name(self, user_id: str, device_name: str) -> int:
        """Set the playback device label.

        Returns the number of rows updated; an unknown user is not an error
        and simply yields 0.
        """

        def work() -> int:
            with self.session_factory() as session:
                result = session.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(device_name=device_name)
                )
                session.commit()
                return result.rowcount

        return await self.executor.run(RetrySafe(work, "update_device_name"))
