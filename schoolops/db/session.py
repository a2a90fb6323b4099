from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from schoolops.core.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    # Server databases drop idle connections: check liveness and recycle every 5 minutes.
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    **_engine_options(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """One session per request. Services commit or roll back explicitly."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_models() -> None:
    """Create all tables. Used on startup for fresh databases."""
    import schoolops.core.models  # noqa: F401  registers mappers on Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
