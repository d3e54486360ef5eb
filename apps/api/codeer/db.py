from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy import MetaData, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from codeer.config import DATABASE_ECHO, DATABASE_POOL_SIZE, DATABASE_URL
from codeer.observability import get_logger, log_event

logger = get_logger("codeer.db")

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def build_engine(url: str = DATABASE_URL) -> AsyncEngine:
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=DATABASE_ECHO)
    return create_async_engine(url, echo=DATABASE_ECHO, pool_pre_ping=True, pool_size=DATABASE_POOL_SIZE)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Orchestrators read ids and metadata after commits and rollbacks.
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def check_db_connection() -> bool:
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as exc:
        log_event(logger, "db.unreachable", error=str(exc))
        return False
