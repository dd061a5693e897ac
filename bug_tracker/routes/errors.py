"""
Global exception handlers.

- BugTrackerError: status from the error's ``http_status``, body from ``to_dict()``
- RequestValidationError: the validation envelope with field-level details
- Exception: opaque 500, internal details are only logged
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import BugTrackerError, InternalError, ValidationError

logger = structlog.get_logger()


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_core_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_core_error_handler(app: FastAPI) -> None:
    @app.exception_handler(BugTrackerError)
    async def core_error_handler(request: Request, exc: BugTrackerError):
        log = logger.error if exc.http_status >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            kind=exc.kind,
            code=exc.code,
            message=exc.message,
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Invalid request", path=request.url.path, errors=len(exc.errors()))
        error = ValidationError(
            "Invalid request data",
            details=[
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict()
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.error(
            "Unhandled exception", path=request.url.path, error=str(exc), exc_info=True
        )
        error = InternalError("An unexpected error occurred")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error.to_dict()
        )
