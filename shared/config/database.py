from contextlib import asynccontextmanager
import os

import structlog
from dotenv import load_dotenv
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from shared.exceptions import StorageFailure
from shared.observability.metrics import erp_storage_failures_total

logger = structlog.get_logger(__name__)

load_dotenv()

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "")
DB_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB", "erp")

DB_ECHO = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")
DB_TIMEOUT = float(os.getenv("DB_TIMEOUT", "30"))

if os.getenv("DATABASE_URL"):
    DATABASE_URL = os.environ["DATABASE_URL"]
elif DB_HOST:
    DATABASE_URL = f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
else:
    # Local single-file database in the working directory
    DATABASE_URL = "sqlite+aiosqlite:///erp_database.db"

Base = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(url: str = DATABASE_URL, echo: bool = DB_ECHO) -> AsyncEngine:
    """Build the async engine for ``url``.

    SQLite connections get foreign-key enforcement switched on and a bounded
    lock wait; an in-memory SQLite database is pinned to a single connection
    so every session sees the same data.
    """
    kwargs = {"echo": echo}
    if _is_sqlite(url):
        kwargs["connect_args"] = {"timeout": DB_TIMEOUT}
        if url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_timeout"] = DB_TIMEOUT

    engine = create_async_engine(url, **kwargs)
    if _is_sqlite(url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def session_scope(session_factory: async_sessionmaker):
    """One transaction per logical operation: commit on success, roll back on any failure."""
    async with session_factory() as session:
        try:
            yield session
        except BaseException:
            await session.rollback()
            raise

        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            erp_storage_failures_total.labels(operation="session.commit").inc()
            logger.error("storage_failure", operation="session.commit", error=str(e))
            raise StorageFailure(f"commit failed: {e}", operation="session.commit") from e
