from collections.abc import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from taskboard import models  # noqa: F401
from taskboard.config import settings
from taskboard.models.base import Base
from taskboard.utils.logger import setup_logger

logger = setup_logger("db")

# --- Application DB ---
if not settings.database_url:
    raise ValueError(
        "TASKBOARD_DATABASE_URL environment variable not set for Application DB"
    )

if settings.database_url.startswith("postgresql://"):
    settings.database_url = settings.database_url.replace(
        "postgresql://", "postgresql+asyncpg://", 1
    )
elif not settings.database_url.startswith(
    ("postgresql+asyncpg://", "sqlite+aiosqlite://")
):
    raise ValueError(f"Unsupported settings.database_url prefix: {settings.database_url}")

IS_SQLITE = settings.database_url.startswith("sqlite")

logger.debug(f"Application DB URL: {settings.database_url}")
if IS_SQLITE:
    # aiosqlite connections are bound to the loop that opened them.
    app_engine = create_async_engine(
        settings.database_url, poolclass=NullPool, echo=False
    )

    @event.listens_for(app_engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    app_engine = create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=60,
        pool_recycle=300,
        echo=False,
        connect_args={"timeout": 30},
    )

AppAsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=app_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# --- Dependency for FastAPI (Application DB) ---
async def get_app_db() -> AsyncGenerator[AsyncSession, None]:
    async with AppAsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create all tables registered on ``Base.metadata`` if they do not exist."""
    if not Base.metadata.tables:
        logger.warning("Base.metadata.tables is EMPTY! No tables will be created.")
    else:
        logger.debug(
            f"Tables registered in Base.metadata: {list(Base.metadata.tables.keys())}"
        )

    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema initialized.")


async def drop_db():
    """Drop every application table. Used by the test-suite and local resets."""
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database schema dropped.")


async def check_db_connection() -> bool:
    try:
        async with app_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connectivity check failed: {e}")
        return False


async def close_db():
    """Closes database connections."""
    logger.info("Closing database connections.")
    await app_engine.dispose()
    logger.info("Database connections closed.")
