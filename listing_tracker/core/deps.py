from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session factory is built at startup and kept on ``app.state``.
    The session is closed when the request finishes.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
