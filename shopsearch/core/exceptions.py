"""Custom exception classes for the application."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class ShopSearchException(Exception):
    """Base exception for all ShopSearch errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class PersistenceUnavailableError(ShopSearchException):
    """Raised when the product store cannot answer a search."""

    status_code = 503
    error_code = "SEARCH_UNAVAILABLE"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        super().__init__(f"Search failed during {operation}: {reason}")


def register_exception_handlers(app: FastAPI) -> None:
    """Map ShopSearch exceptions onto the standard error envelope."""
    # Imported here so schemas stay free of web-layer imports at module load
    from shopsearch.schemas.common import ErrorDetail, ErrorResponse

    @app.exception_handler(ShopSearchException)
    async def handle_shopsearch_error(request: Request, exc: ShopSearchException) -> JSONResponse:
        logger.error(
            "request_failed",
            path=request.url.path,
            error_code=exc.error_code,
            error=exc.message,
        )
        payload = ErrorResponse(error=ErrorDetail(code=exc.error_code, message=exc.message))
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump())
