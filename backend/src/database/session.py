from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from src.database.engine import engine
from src.exceptions import ConflictError


async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session generator.

    Yields
    ------
        AsyncSession: Database session without automatic commit.
        The service layer should handle commits/rollbacks.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(session: AsyncSession, resource_type: str, resource_id: object) -> AsyncGenerator[None, None]:
    """Run a read-modify-write block and commit it as one unit.

    Versioned rows are checked on every flush, including autoflush inside the
    block, so an optimistic-lock failure anywhere in the unit becomes a
    ConflictError and nothing is persisted.
    """
    try:
        yield
        await session.commit()
    except StaleDataError as e:
        await session.rollback()
        raise ConflictError(resource_type, resource_id) from e
    except Exception:
        await session.rollback()
        raise


# Create a reusable dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
