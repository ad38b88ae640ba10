"""Authentication-specific exceptions."""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Base authentication error."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class MissingIdentityError(AuthenticationError):
    """The request carries no caller identity."""

    def __init__(self, header: str) -> None:
        super().__init__(detail=f"Missing {header} header")


class InvalidIdentityError(AuthenticationError):
    """The caller identity is not a valid user id."""

    def __init__(self, header: str) -> None:
        super().__init__(detail=f"Invalid {header} header")


class UnknownAuthProviderError(HTTPException):
    """Unknown auth provider configured."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Unknown authentication provider: {provider}"
        )
