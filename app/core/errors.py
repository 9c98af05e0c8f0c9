from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional, Any

from app.core.exceptions import PairServerError
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse
from app.core.config import settings

logger = get_logger(__name__)


def error_response(status_code: int, message: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    """
    Builds a JSON error response with the shared ErrorResponse body.
    """
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, details=details).model_dump()
    )


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(PairServerError)
    async def pairserver_exception_handler(request: Request, exc: PairServerError):
        logger.warning(
            f"Request rejected: {exc.message}",
            extra={"path": request.url.path, "code": exc.code}
        )
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (404, 405, etc.)
        """
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handles Pydantic validation errors.
        """
        return error_response(
            422,
            "Input validation failed",
            "VALIDATION_ERROR",
            details=jsonable_errors(exc)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )

        message = "An internal error occurred. Please try again later." if settings.is_production else str(exc)

        return error_response(500, message, "INTERNAL_ERROR")


def jsonable_errors(exc: RequestValidationError) -> list:
    """Pydantic error entries may carry exception objects in 'ctx'."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors
