"""
Async database setup with SQLAlchemy and aiosqlite.

The API and the batch worker write to the same file, so every connection
waits on a locked database instead of failing immediately.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import event, text

from speechdesk.config import DATABASE_URL, DATABASE_BUSY_TIMEOUT, ensure_directories
from speechdesk.models import Base


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)


@event.listens_for(engine.sync_engine, 'connect')
def _set_busy_timeout(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute(f'PRAGMA busy_timeout={int(DATABASE_BUSY_TIMEOUT * 1000)}')
    cursor.close()


async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def enable_wal_mode():
    """Enable WAL mode so intake and the worker can write concurrently."""
    async with engine.begin() as conn:
        await conn.execute(text('PRAGMA journal_mode=WAL'))
        await conn.execute(text('PRAGMA synchronous=NORMAL'))


async def init_db():
    """Create tables, then switch the journal to WAL."""
    ensure_directories()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await enable_wal_mode()


async def close_db():
    await engine.dispose()


async def get_db():
    """
    Request-scoped session; commits on success, rolls back on error.

    Usage:
        @router.get('/voice-profiles')
        async def list_profiles(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the session factory used by background services."""
    return async_session_factory
