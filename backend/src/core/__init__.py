from .retry import retry_async


__all__ = ["retry_async"]
