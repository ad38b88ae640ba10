"""Authentication module exports."""

from src.auth.config import DEFAULT_USER_ID
from src.auth.context import (
    AuthContext,
    CurrentAuth,
    UserContext,
    get_auth_context,
)


__all__ = [
    "DEFAULT_USER_ID",
    "AuthContext",
    "CurrentAuth",
    "UserContext",
    "get_auth_context",
]
