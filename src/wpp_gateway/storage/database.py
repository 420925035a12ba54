"""Async database engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wpp_gateway.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.is_dev and settings.log_level == "DEBUG",
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
