from sqlalchemy.ext.asyncio import create_async_engine,async_sessionmaker,AsyncSession,AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import event, text
from personaflow.core.config import settings
from loguru import logger
import asyncio
from typing import Any, Dict, Optional

Base=declarative_base()

async_engine: Optional[AsyncEngine]=None
AsyncSessionLocal: Optional[async_sessionmaker]=None


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options differ between SQLite and server databases."""
    if database_url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # A bare "sqlite+aiosqlite://" (or ":memory:") must share one connection,
        # otherwise every checkout sees a fresh empty database.
        if database_url.rstrip("/").endswith(":") or ":memory:" in database_url:
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
    }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def init_db(database_url: Optional[str] = None):
    """
    Initializes the database engine and creates tables if they don't exist.
    Retries the first connection so the service can start before its
    database server is reachable.
    """
    global async_engine,AsyncSessionLocal
    if async_engine is not None:
        logger.info("Database engine already initialized.")
        return

    # Register the ORM tables on Base.metadata before create_all
    from personaflow.models import persona, workstream, task  # noqa: F401

    server_url = database_url or settings.DATABASE_URL

    max_retries=settings.DATABASE_CONNECT_RETRIES
    retry_delay=settings.DATABASE_RETRY_DELAY

    for i in range(max_retries):
        engine = None
        try:
            engine = create_async_engine(
                server_url,
                echo=settings.DATABASE_ECHO_SQL,
                pool_pre_ping=True, # Ensures connections are alive
                **_engine_options(server_url),
            )
            if server_url.startswith("sqlite"):
                event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                await conn.run_sync(Base.metadata.create_all)

            async_engine = engine
            AsyncSessionLocal = async_sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=async_engine,
                class_=AsyncSession,
                expire_on_commit=False # Prevents objects from expiring after commit
            )

            logger.info("Database tables initialized successfully (or already existed).")
            break # Exit loop if successful

        except Exception as e:
            if engine is not None:
                await engine.dispose()
            logger.error(f"Failed to connect to database or create tables (Attempt {i+1}/{max_retries}): {e}")
            if i < max_retries - 1:
                logger.info(f"Retrying database connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.critical("Maximum database connection retries reached. Exiting startup.")
                raise

async def get_session_factory() -> async_sessionmaker:
    """
    Dependency that provides the session factory used by the persistence service.
    """
    if AsyncSessionLocal is None:
        # This case should ideally not happen if init_db is called on startup
        logger.error("AsyncSessionLocal is not initialized. Calling init_db...")
        await init_db() # Attempt to initialize if not already
        if AsyncSessionLocal is None: # If init_db still fails
            raise RuntimeError("Database session local could not be initialized.")
    return AsyncSessionLocal


async def dispose_db():
    """Disposes the database engine connections."""
    global async_engine,AsyncSessionLocal
    if async_engine:
        await async_engine.dispose()
        logger.info("Database engine connections disposed.")
    async_engine=None
    AsyncSessionLocal=None
