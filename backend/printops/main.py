"""
PrintOps Workflow Backend - Main FastAPI Application

Configures middleware, error handlers, routes and the lifespan that owns
the database indexes and the reminder scheduler.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .scheduler.reminder_scheduler import start_scheduler, stop_scheduler
from .utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup creates MongoDB indexes and starts the reminder sweep;
    shutdown stops the sweep and closes the client.
    """
    logger.info("Starting PrintOps backend...")

    try:
        create_indexes()
    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")

    if settings.reminder_scheduler_enabled:
        try:
            start_scheduler()
        except Exception as e:
            logger.error(f"Failed to start reminder scheduler: {e}")

    yield

    logger.info("Shutting down...")
    stop_scheduler()
    close_connection()


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    show_docs = settings.debug and not settings.is_production
    application = FastAPI(
        title="PrintOps Workflow Backend",
        description="Project lifecycle and reminder service for print production",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if show_docs else None,
        redoc_url="/api/redoc" if show_docs else None,
        openapi_url="/api/openapi.json" if show_docs else None,
    )

    _configure_middleware(application)
    register_error_handlers(application)
    _configure_routes(application)

    return application


def _configure_middleware(app: FastAPI) -> None:
    # allow_credentials must be False when every origin is allowed
    allow_all = settings.cors_origins.strip() == "*"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        """Liveness plus database connectivity"""
        mongo_health = health_check()
        return {
            "status": "healthy" if mongo_health.get("status") == "healthy" else "degraded",
            "version": APP_VERSION,
            "environment": settings.environment,
            "mongo": mongo_health,
        }


app = create_app()
