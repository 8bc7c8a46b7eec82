from __future__ import annotations

from functools import wraps
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import AppAsyncSessionLocal
from taskboard.models.base import Base
from taskboard.utils.logger import setup_logger

logger = setup_logger("db_handlers")


ModelType = TypeVar("ModelType", bound=Base)


def check_local_db(func):
    """Run ``func`` in its own committed session unless the caller passes ``db``."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        # The caller that created the session owns the transaction.
        if kwargs.get("db"):
            return await func(*args, **kwargs)

        # Stale pooled connections are replaced by the engine pre-ping
        async with AppAsyncSessionLocal() as db:
            kwargs["db"] = db
            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(
                    f"Transaction failed in {func.__name__}: {e}", exc_info=True
                )
                raise

    return wrapper


class BaseDBHandler(Generic[ModelType]):
    """Generic handler for database operations with basic CRUD methods."""

    def __init__(self, model: type[ModelType]):
        self.model = model

    @check_local_db
    async def create(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> ModelType:
        """Create a new record in the database."""
        db_obj = self.model(**obj_dict)
        try:
            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)
            return db_obj
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"IntegrityError creating {self.model.__name__}: {e}")
            # Re-raise IntegrityError so calling code can handle it specifically
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating {self.model.__name__}: {e}", exc_info=True)
            raise

    @check_local_db
    async def get(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        """Get a single record by its primary key."""
        stmt = select(self.model).where(self.model.id == id)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def get_by_attributes(
        self, *, db: AsyncSession = None, **kwargs
    ) -> ModelType | None:
        """Get a single record by a set of attributes."""
        stmt = select(self.model).filter_by(**kwargs)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def count_by_attributes(self, *, db: AsyncSession = None, **kwargs) -> int:
        """Count records matching a set of attributes."""
        stmt = select(func.count()).select_from(self.model).filter_by(**kwargs)
        return (await db.execute(stmt)).scalar_one()

    @check_local_db
    async def update(
        self,
        db_obj: ModelType,
        update_data: dict[str, Any],
        *,
        db: AsyncSession = None,
    ) -> ModelType:
        """Update an existing record in the database."""
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        try:
            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Error updating {self.model.__name__} with id {db_obj.id}: {e}",
                exc_info=True,
            )
            raise

    @check_local_db
    async def remove(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        """Remove a record from the database by its primary key."""
        obj = await self.get(id, db=db)
        if obj:
            try:
                await db.delete(obj)
                await db.commit()
                return obj
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(
                    f"Error removing {self.model.__name__} with id {id}: {e}",
                    exc_info=True,
                )
                raise
        return None
