import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from app.containers import AppContainer
from api.middleware.error_handling import ErrorHandlingMiddleware, register_exception_handlers
from api.middleware.request_ids import RequestIdMiddleware
from api.routers import accounts, executions, security
from core.config.settings import Environment
from core.logging import configure_logging, get_api_logger

logger = get_api_logger("api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    container = app.state.container
    settings = container.settings()
    logger.info("Starting DeltaDesk API server", environment=settings.environment.value)

    db_manager = container.db_manager()
    await db_manager.init()

    yield

    # Shutdown: close sessions first, then wipe keys
    logger.info("Shutting down DeltaDesk API server")
    try:
        await container.execution_registry().cleanup()
    finally:
        container.credential_vault().clear()
        await db_manager.shutdown()
    logger.info("API services stopped")


def _build_uvicorn_log_config() -> dict:
    """Levels only; handlers stay as wired by the structlog setup."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "loggers": {
            "uvicorn": {"level": "INFO", "propagate": False},
            "uvicorn.error": {"level": "INFO", "propagate": False},
            "uvicorn.access": {"level": "INFO", "propagate": False},
            "fastapi": {"level": "INFO", "propagate": False},
        },
    }


def create_app(container: Optional[AppContainer] = None) -> FastAPI:
    """Creates and configures the FastAPI application"""
    container = container or AppContainer()
    settings = container.settings()

    app = FastAPI(
        title="DeltaDesk API",
        version=settings.version,
        description="""
        # DeltaDesk API

        Credential vault and execution registry for multi-chain trading sessions.

        - **Security**: master password setup, unlock and lock
        - **Accounts**: import encrypted accounts, list loaded accounts
        - **Executions**: start, inspect and close trading executions
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.container = container

    configure_logging(settings)

    container.wire(modules=[
        "api.dependencies",
    ])

    # Last added runs outermost: request ids wrap error handling
    register_exception_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    cors_origins = settings.api.cors_origins
    if settings.environment == Environment.PRODUCTION and "*" in cors_origins:
        raise ValueError(
            "CORS wildcard (*) not allowed in production. "
            "Specify exact origins in API__CORS_ORIGINS environment variable."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=settings.api.cors_methods,
        allow_headers=settings.api.cors_headers,
    )

    app.include_router(security.router, prefix="/api/v1")
    app.include_router(accounts.router, prefix="/api/v1")
    app.include_router(executions.router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    def health_check():
        return {
            "status": "healthy",
            "service": "deltadesk-api",
            "version": settings.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "vault_unlocked": container.credential_vault().is_unlocked(),
            "active_executions": container.execution_registry().get_execution_count(),
        }

    return app


def run():
    """Main function to run the API server"""
    app = create_app()
    settings = app.state.container.settings()

    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.logging.level.lower(),
        access_log=True,
        log_config=_build_uvicorn_log_config(),
    )


if __name__ == "__main__":
    run()
