"""AuthContext (aka UserContext): the caller id paired with the request session.

Feature services receive one of these instead of separate user_id/session
pairs, so every read and write is scoped to the caller.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, TypeVar
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select

from src.auth.dependencies import _get_user_id
from src.database.session import DbSession
from src.exceptions import ResourceNotFoundError


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


class UserContext:
    """Request-scoped user context with ownership helpers.

    Models without a `user_id` column are rejected by the generic helpers so
    that a feature module has to write its own ownership check.
    """

    def __init__(self, user_id: UUID, session: AsyncSession) -> None:
        self.user_id = user_id
        self.session = session

    @staticmethod
    def _require_owner_column(model: type[Any]) -> None:
        if not hasattr(model, "user_id"):
            msg = f"Model {model.__name__} has no user_id attribute; implement explicit ownership logic"
            raise NotImplementedError(msg)

    async def query_owned(self, model: type[T], /, **filters: Any) -> list[T]:
        """Return all rows for `model` owned by current user, with extra equality filters."""
        self._require_owner_column(model)

        stmt = select(model).where(model.user_id == self.user_id)
        for key, value in filters.items():
            if not hasattr(model, key):
                msg = f"{model.__name__} has no attribute '{key}' for filtering"
                raise AttributeError(msg)
            stmt = stmt.where(getattr(model, key) == value)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_owned(self, model: type[T], record_id: Any) -> T | None:
        """Fetch a single row by id if owned by the current user."""
        self._require_owner_column(model)

        stmt = select(model).where(model.id == record_id, model.user_id == self.user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_or_404(self, model: type[T], record_id: Any, resource_name: str = "Resource") -> T:
        """Fetch a single row by id or raise ResourceNotFoundError if missing or not owned."""
        row = await self.get_owned(model, record_id)
        if row is None:
            raise ResourceNotFoundError(resource_name, record_id)
        return row


# FastAPI DI helpers
AuthContext = UserContext


async def get_auth_context(
    user_id: Annotated[UUID, Depends(_get_user_id)],
    session: DbSession,
) -> AuthContext:
    """Build an AuthContext for the current request."""
    return AuthContext(user_id=user_id, session=session)


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]
