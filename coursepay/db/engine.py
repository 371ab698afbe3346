"""CoursePay - Async MySQL database engine."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from coursepay.core.config import Settings


class Database:
    """Owns the async engine and session factory.

    Constructed once at process start (application lifespan or worker task)
    and disposed on shutdown.

    Usage:
        db = Database.from_settings(get_settings())
        async with db.session() as session:
            result = await session.execute(select(Transaction))
        await db.dispose()
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any) -> None:
        self.engine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Create the production engine.

        Note: pool_pre_ping helps detect stale connections
        """
        return cls(
            str(settings.database_url),
            echo=settings.debug,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
        )

    async def create_all(self) -> None:
        """Create all tables (tests and local development; Alembic owns production)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        """Close database connections."""
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an async database session.

        Commits when the block exits cleanly, rolls back on error.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Usage in routes:
        @router.get("/history")
        async def history(db: AsyncSession = Depends(get_db)):
            ...
    """
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session
