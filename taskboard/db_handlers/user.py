from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db_handlers.base import BaseDBHandler, check_local_db
from taskboard.models.user import User
from taskboard.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self):
        super().__init__(User)

    @check_local_db
    async def get_user_by_email(
        self, email: str, *, db: AsyncSession = None
    ) -> User | None:
        """Get a user by (lower-cased) email."""
        try:
            stmt = select(User).filter(User.email == email.lower())
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email '{email}': {e}")
            raise

    @check_local_db
    async def count_by_email(self, email: str, *, db: AsyncSession = None) -> int:
        return await self.count_by_attributes(email=email.lower(), db=db)
