import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# Load .env FIRST before any other imports that might need env vars
BACKEND_DIR = Path(__file__).parent.parent
ENV_PATH = BACKEND_DIR / ".env"
load_dotenv(ENV_PATH)

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DatabaseError, OperationalError
from starlette.requests import Request

from .ai.router import router as ai_router
from .auth.exceptions import AuthenticationError
from .config.logging import setup_logging
from .config.settings import get_settings
from .database.session import engine
from .exceptions import (
    AlreadyExistsError,
    CollaboratorUnavailableError,
    ConflictError,
    ResourceNotFoundError,
    ValidationError as DomainValidationError,
)
from .goals.router import router as goals_router
from .lessons.router import router as lessons_router
from .middleware.error_handlers import (
    ErrorCategory,
    ErrorCode,
    format_error_response,
    handle_authentication_errors,
    handle_conflict_errors,
    handle_database_errors,
    handle_external_service_errors,
    handle_not_found_errors,
    handle_rate_limit_errors,
    handle_validation_errors,
    log_error_context,
)
from .middleware.security import SimpleSecurityMiddleware, limiter
from .users.router import router as users_router
from .videos.router import router as youtube_router


setup_logging()
logger = logging.getLogger(__name__)


def _register_routers(app: FastAPI) -> None:
    """Register all application routers."""
    app.include_router(goals_router)
    app.include_router(lessons_router)
    app.include_router(users_router)
    app.include_router(ai_router)
    app.include_router(youtube_router)


async def _startup_validation() -> None:
    """Validate configurations on startup."""
    try:
        from src.auth.validation import validate_auth_on_startup

        validate_auth_on_startup()
    except Exception as e:
        logger.exception(f"Auth configuration validation failed: {e}")
        raise

    if not get_settings().PRIMARY_LLM_MODEL:
        logger.warning("PRIMARY_LLM_MODEL is not set - AI endpoints will answer 503, insights use rules only")
    if not get_settings().YOUTUBE_API_KEY:
        logger.warning("YOUTUBE_API_KEY is not set - YouTube endpoints will answer 503")


async def _startup_database() -> None:
    """Initialize database with retry logic."""
    max_retries = 5
    retry_delay = 1  # seconds

    for attempt in range(max_retries):
        try:
            from src.database.init import init_database

            await init_database(engine)
            logger.info("Database initialization completed successfully")

            break  # Success - exit the retry loop

        except OperationalError:
            if attempt == max_retries - 1:  # Last attempt
                logger.exception("Startup failed after %d attempts", max_retries)
                raise

            logger.warning(
                "Database connection attempt %d failed, retrying in %ds...",
                attempt + 1,
                retry_delay,
            )
            await asyncio.sleep(retry_delay)
            retry_delay *= 2  # Exponential backoff

        except Exception:
            logger.exception("Startup failed with unexpected error")
            raise


async def _shutdown_cleanup() -> None:
    """Clean up resources on shutdown."""
    logger.info("Starting graceful shutdown...")

    try:
        await engine.dispose()
        logger.info("Database engine disposed successfully")
    except Exception as e:
        logger.warning(f"Error disposing database engine: {e}")

    logger.info("Shutdown complete")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    await _startup_validation()
    await _startup_database()

    yield

    # Shutdown
    await _shutdown_cleanup()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    try:
        settings = get_settings()
    except Exception:
        logger.exception("Failed to load settings")
        raise

    app = FastAPI(
        title="Learning Tracker API",
        description="Learning goals, lessons, progress analytics and AI study assistance",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan if settings.ENVIRONMENT != "test" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add security middleware (headers + basic protection)
    app.add_middleware(SimpleSecurityMiddleware)

    # Add rate limiting
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return await handle_rate_limit_errors(request, exc)

    # Authentication errors (401)
    @app.exception_handler(AuthenticationError)
    async def auth_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
        return await handle_authentication_errors(request, exc)

    # Validation errors (400/422)
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return await handle_validation_errors(request, exc)

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return await handle_validation_errors(request, exc)

    @app.exception_handler(DomainValidationError)
    async def domain_validation_handler(request: Request, exc: DomainValidationError) -> JSONResponse:
        return await handle_validation_errors(request, exc)

    # Missing or not owned (404)
    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(request: Request, exc: ResourceNotFoundError) -> JSONResponse:
        return await handle_not_found_errors(request, exc)

    # Concurrent updates and duplicates (409)
    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        return await handle_conflict_errors(request, exc)

    @app.exception_handler(AlreadyExistsError)
    async def already_exists_handler(request: Request, exc: AlreadyExistsError) -> JSONResponse:
        return await handle_conflict_errors(request, exc)

    # External service errors (503)
    @app.exception_handler(CollaboratorUnavailableError)
    async def external_service_handler(request: Request, exc: CollaboratorUnavailableError) -> JSONResponse:
        return await handle_external_service_errors(request, exc)

    # Database errors
    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
        return await handle_database_errors(request, exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        from uuid import uuid4

        # Generate error ID for tracking
        error_id = uuid4()

        # Log comprehensive error context
        log_error_context(request, exc, error_id)

        # Return generic error response without exposing internal details
        return format_error_response(
            category=ErrorCategory.INTERNAL,
            code=ErrorCode.INTERNAL,
            detail="An unexpected error occurred",
            status_code=500,
            metadata={"error_id": str(error_id)},
            suggestions=["Please try again later", "If the problem persists, contact support with the error ID"],
        )

    # Register health check endpoint
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Check application health status."""
        return {"status": "healthy"}

    # Register all routers
    _register_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    from src.config import env

    host = env("API_HOST", "127.0.0.1")
    port = int(env("API_PORT", "8080"))

    uvicorn.run(app, host=host, port=port)
