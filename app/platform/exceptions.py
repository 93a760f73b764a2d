from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.features.scan.exceptions import (
    InvalidInputError,
    PersistenceError,
    ScanConsistencyError,
    ScanExecutionError,
)
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return api_response(
            message=exc.message,
            status_code=status.HTTP_400_BAD_REQUEST,
            data=exc.to_dict(),
        )

    @app.exception_handler(ScanExecutionError)
    async def scan_execution_handler(request: Request, exc: ScanExecutionError):
        logger.error(f"[scan] Scan failed for {exc.url}: {exc.message}")
        return api_response(
            message=exc.message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            data=exc.to_dict(),
        )

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        message = "Failed to save scan"
        if isinstance(exc, ScanConsistencyError):
            message = "Scan saved without its violations"
        logger.error(f"[scan] {message} ({exc.stage}) for {exc.url}: {exc.message}")
        return api_response(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            data=exc.to_dict(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
