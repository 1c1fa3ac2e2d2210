"""API router assembly and exception handlers."""

import logging

from fastapi import APIRouter, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from echelon.api.admin import admin_router
from echelon.api.auth import auth_router
from echelon.api.employees import employee_router
from echelon.utils.errors import APIError, ErrorResponse, FieldError

logger = logging.getLogger(__name__)


# =============================================================================
# Register Routes
# =============================================================================

api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(employee_router)
api_router.include_router(admin_router)


# =============================================================================
# Exception Handlers (to be registered with FastAPI app)
# =============================================================================

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle API errors and return structured responses."""
    response = exc.to_response()
    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
    )


async def request_validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Map request body and query validation failures to field errors."""
    field_errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors.append(
            FieldError(
                field=".".join(location) or "request",
                message=error.get("msg", "Invalid value"),
                code=error.get("type", "invalid"),
            )
        )

    response = ErrorResponse(
        message="Request validation failed",
        status_code=400,
        error_code="validation_error",
        field_errors=field_errors,
    )
    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and return a generic internal error."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    response = ErrorResponse(
        message="An unexpected error occurred",
        status_code=500,
        error_code="internal_error",
    )
    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
    )
