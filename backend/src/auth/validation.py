"""Startup validation of the identity configuration."""

import logging
from typing import Any

from src.config.settings import get_settings


logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("none", "header")


class AuthConfigurationError(Exception):
    """Exception raised when auth configuration is invalid or inconsistent."""


def validate_auth_config() -> dict[str, Any]:
    """Check AUTH_PROVIDER and its companion settings.

    Returns
    -------
        Dict with the provider, blocking issues and warnings
    """
    settings = get_settings()
    issues: list[str] = []
    warnings: list[str] = []

    auth_provider = settings.AUTH_PROVIDER.lower()

    if auth_provider not in SUPPORTED_PROVIDERS:
        issues.append(f"Invalid AUTH_PROVIDER: {auth_provider}. Must be one of {', '.join(SUPPORTED_PROVIDERS)}")

    if auth_provider == "none":
        if settings.ENVIRONMENT == "production":
            issues.append("AUTH_PROVIDER=none (single-user mode) is not allowed in production")
        else:
            warnings.append("Single-user mode active; every request acts as the default user")

    if auth_provider == "header" and not settings.AUTH_USER_HEADER:
        issues.append("AUTH_USER_HEADER is required when AUTH_PROVIDER=header")

    return {
        "valid": not issues,
        "auth_provider": auth_provider,
        "issues": issues,
        "warnings": warnings,
    }


def validate_auth_on_startup() -> None:
    """Entry point for startup auth validation; raises on blocking issues."""
    logger.info("Validating authentication configuration...")
    result = validate_auth_config()

    for warning in result["warnings"]:
        logger.warning(f"Auth configuration: {warning}")

    if not result["valid"]:
        for issue in result["issues"]:
            logger.error(f"Auth configuration: {issue}")
        msg = f"Invalid auth configuration: {'; '.join(result['issues'])}"
        raise AuthConfigurationError(msg)

    logger.info(f"Auth configuration valid (provider: {result['auth_provider']})")
