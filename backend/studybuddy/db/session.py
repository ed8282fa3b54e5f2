"""Database engine and request-scoped sessions."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from studybuddy.config import Settings, get_settings

settings = get_settings()


def ssl_connect_args(settings: Settings, *, sync: bool = False) -> dict[str, str]:
    """
    Driver options that switch on SSL for hosted databases.

    The URL query is stripped before it reaches the driver, so SSL has to be
    passed here. asyncpg takes `ssl`; psycopg2 (Alembic) takes `sslmode`.
    """
    if not settings.database_requires_ssl:
        return {}
    return {"sslmode": "require"} if sync else {"ssl": "require"}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
    connect_args=ssl_connect_args(settings),
)

# expire_on_commit=False: orchestrator results are read after their commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Commits whatever the route left pending and rolls back on any error.
    Stores and the orchestrator commit their own steps, so this commit is
    usually a no-op.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
