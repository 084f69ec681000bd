from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from listing_tracker.core.config import StoreConfig

_SYNC_POSTGRES_DRIVERS = ("postgres", "postgresql", "postgresql+psycopg2")


def build_store_url(store: StoreConfig) -> URL:
    """Turn the configured store URL and key into an async SQLAlchemy URL.

    Plain Postgres URLs (as copied from a hosting dashboard) are switched to
    the asyncpg driver, and the key is used as the password unless the URL
    already carries one.
    """
    url = make_url(store.url)
    if url.drivername in _SYNC_POSTGRES_DRIVERS:
        url = url.set(drivername="postgresql+asyncpg")
    if url.get_backend_name() != "sqlite" and not url.password:
        url = url.set(password=store.key)
    return url


def build_engine(store: StoreConfig, echo: bool = False) -> AsyncEngine:
    return create_async_engine(
        build_store_url(store),
        echo=echo,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
