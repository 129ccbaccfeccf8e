from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from config.settings import settings

DATABASE_URL = settings.database_url or "sqlite+aiosqlite:///./postmaster.db"

# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)

# Create declarative base for models
Base = declarative_base()

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db(bind=None):
    """
    Initialize the database by creating all tables.
    This should be called on application startup.
    """
    async with (bind or engine).begin() as conn:
        # Import models here to ensure they're registered with Base
        from database_models import KeyValueBlob  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
