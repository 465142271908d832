import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import get_settings
from app.models import Task, TaskResponse
from app.realtime.change_stream import change_stream

logger = logging.getLogger(__name__)

# Driver-level connection failures (asyncpg) surface as OSError
STORAGE_ERRORS = (SQLAlchemyError, OSError)

settings = get_settings()

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    future=True,
    pool_pre_ping=True,
)

# Create async session factory using async_sessionmaker
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Committed task writes feed the change stream
change_stream.watch_model(
    Task,
    "tasks",
    lambda task: TaskResponse.model_validate(task).model_dump(mode="json", by_alias=True),
)
change_stream.bind(AsyncSession.sync_session_class)


# Dependency for getting DB session
async def get_db():
    async with async_session() as session:
        yield session


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def connect_database() -> bool:
    """Create tables at startup. Failure is logged and the app keeps serving."""
    try:
        await create_db_and_tables()
    except STORAGE_ERRORS as e:
        logger.error(f"Error connecting to database: {e}")
        return False
    logger.info("Connected to database")
    return True


async def ping_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except STORAGE_ERRORS as e:
        logger.warning(f"Database ping failed: {e}")
        return False
    return True
