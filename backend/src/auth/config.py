"""Core caller-identity resolution."""

import logging
from uuid import UUID

from fastapi import Request

from src.auth.exceptions import InvalidIdentityError, MissingIdentityError, UnknownAuthProviderError
from src.config.settings import get_settings


logger = logging.getLogger(__name__)
settings = get_settings()

# THE ONLY USER ID CONSTANT IN THE ENTIRE CODEBASE
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


def _identity_from_header(request: Request) -> UUID:
    """Read the caller id set by the trusted upstream gateway."""
    raw = request.headers.get(settings.AUTH_USER_HEADER, "").strip()
    if not raw:
        logger.warning(f"Missing {settings.AUTH_USER_HEADER} header")
        raise MissingIdentityError(settings.AUTH_USER_HEADER)

    try:
        return UUID(raw)
    except ValueError as e:
        logger.warning(f"Malformed {settings.AUTH_USER_HEADER} header: {raw!r}")
        raise InvalidIdentityError(settings.AUTH_USER_HEADER) from e


async def get_user_id(request: Request) -> UUID:
    """Resolve the caller's user id.

    Single-user mode: always DEFAULT_USER_ID, refused in production.
    Header mode: the gateway-supplied id, no fallback to the default user.
    """
    if settings.AUTH_PROVIDER == "none":
        if settings.ENVIRONMENT == "production":
            logger.error("AUTH_PROVIDER='none' is not allowed in production!")
            error_msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production. Use header authentication."
            raise ValueError(error_msg)
        return DEFAULT_USER_ID

    if settings.AUTH_PROVIDER == "header":
        return _identity_from_header(request)

    logger.error(f"Unknown auth provider: {settings.AUTH_PROVIDER}")
    raise UnknownAuthProviderError(settings.AUTH_PROVIDER)
