"""
db/session.py — Database Connection & Session Management
=========================================================
Handles async database connection using SQLAlchemy.
Called by main.py on startup via init_db().

All modules receive an AsyncSession from get_db() (a FastAPI dependency)
and group multi-step writes with transaction().
"""

import logging
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings
from core.errors import RegistryError, TransactionFailure

logger = logging.getLogger("pwdregistry.db")

# Convert standard postgres:// URL to async postgresql+asyncpg://
DATABASE_URL = settings.DATABASE_URL.replace(
    "postgresql://", "postgresql+asyncpg://"
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    SQLite connections get foreign key enforcement switched on; other
    backends get the configured pool sizing.
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.DEBUG, **kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        echo=settings.DEBUG,   # logs all SQL in debug mode
        **kwargs,
    )


# Create async engine
engine = build_engine(DATABASE_URL)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class all database models inherit from."""
    pass


async def init_db():
    """Create all tables on startup if they don't exist."""
    import db.models  # noqa: F401  registers the tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created / verified.")


async def get_db():
    """
    FastAPI dependency: yields a DB session per request.

    Usage in any route:
        from db.session import get_db
        from sqlalchemy.ext.asyncio import AsyncSession

        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession, action: str):
    """
    One atomic unit of work on the caller's session.

        async with transaction(db, "create PWD record"):
            db.add(record)
            await db.flush()

    Commits when the block exits cleanly. Any exception rolls the whole
    unit back: registry errors are re-raised as-is, driver errors become a
    single TransactionFailure naming the action.
    """
    try:
        yield db
        await db.commit()
    except RegistryError as exc:
        await db.rollback()
        logger.warning(f"Rolled back '{action}': {exc.message}")
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning(f"Rolled back '{action}' after database error: {exc}")
        raise TransactionFailure(f"Failed to {action}: {exc}") from exc
    except Exception:
        await db.rollback()
        raise
