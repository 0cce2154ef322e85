from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
import app.settings as settings

Base = declarative_base()


def make_engine(dsn: str = settings.DATABASE_URL) -> AsyncEngine:
    if make_url(dsn).get_backend_name() == "sqlite":
        # sqlite has no connection pool to size
        return create_async_engine(dsn, echo=False)

    return create_async_engine(
        dsn,
        echo=False,
        pool_size=10,
        max_overflow=20
    )


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create the mirror tables if they do not exist yet."""
    from . import beatmaps  # noqa: F401 (registers the tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
