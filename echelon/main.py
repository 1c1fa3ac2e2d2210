"""Main application entry point for the Echelon employee directory API."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from echelon.config.settings import get_settings
from echelon.data.employee_repository import EmployeeRepository
from echelon.database.database import (
    DatabaseConfig,
    dispose_engine,
    get_db,
    get_engine,
    init_db,
)
from echelon.routes.api import (
    api_error_handler,
    api_router,
    request_validation_error_handler,
    unhandled_error_handler,
)
from echelon.utils.errors import APIError


# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info("Starting Echelon API...")

    config = DatabaseConfig.from_env()
    if not config.url_override:
        logger.info(f"Connecting to database at {config.host}:{config.port}/{config.database}")
    get_engine(config)

    if get_settings().bootstrap.auto_init:
        logger.info("Creating schema and bootstrap administrator")
        init_db(config)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down Echelon API...")
    dispose_engine()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Employee directory and reporting hierarchy with role-based "
            "visibility and editing rights."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(api_router)

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check(db: Annotated[Session, Depends(get_db)]) -> JSONResponse:
        """Check database connectivity and report the directory size."""
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            db.execute(text("SELECT 1"))
            total = EmployeeRepository(db).count_all()
        except SQLAlchemyError:
            logger.exception("Health check failed")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": "unavailable", "timestamp": timestamp},
            )

        return JSONResponse(
            content={
                "status": "healthy",
                "database": "connected",
                "total_employees": total,
                "version": settings.app_version,
                "timestamp": timestamp,
            },
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "echelon.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
