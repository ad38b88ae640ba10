from typing import Any

from .settings import Settings, get_settings


def env(key: str, default: Any = None) -> Any:
    """Read a configuration value through the cached settings.

    Defined fields come back validated and type-converted; anything else falls
    back to the raw values captured by ``extra="allow"``.
    """
    settings = get_settings()

    value = getattr(settings, key.upper(), None)
    if value is not None:
        return value

    extra = settings.model_extra or {}
    return extra.get(key.lower(), extra.get(key.upper(), default))


__all__ = ["Settings", "env", "get_settings"]
