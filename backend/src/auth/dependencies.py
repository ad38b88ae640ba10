"""FastAPI authentication dependencies.

The identity resolution lives in config.py; this module wraps it for use as
FastAPI dependencies.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request

from src.auth.config import get_user_id


async def _get_user_id(request: Request) -> UUID:
    """Get user ID dependency for FastAPI routes.

    Returns
    -------
        UUID: The caller's ID, or DEFAULT_USER_ID in single-user mode
    """
    if getattr(request.state, "user_id", None) is not None:
        return request.state.user_id
    user_id = await get_user_id(request)
    request.state.user_id = user_id
    return user_id


# Usage: async def my_route(user_id: UserId) -> Response:
UserId = Annotated[UUID, Depends(_get_user_id)]
