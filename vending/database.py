from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from vending.config import Settings

T = TypeVar("T")

# Base class for models
Base = declarative_base()


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async SQLAlchemy engine.

    Connection pool sizing only applies to server databases; SQLite
    picks its own pool class.
    """
    options = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
        )
    return create_async_engine(settings.DATABASE_URL, **options)


class Database:
    """
    Owns the engine and session factory.

    Sessions opened here never expire loaded attributes on commit, so
    entities returned from a closed session stay readable as snapshots.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(build_engine(settings))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Transaction scope for multi-entity writes.

        Every write made through the yielded session commits together when
        the block exits normally; any exception rolls all of them back.
        """
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def run_in_transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``fn`` with a transaction-scoped session and return its result."""
        async with self.transaction() as session:
            return await fn(session)

    async def create_all(self) -> None:
        """Create database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()
