"""
Error types and the handlers that render them

Every failure leaves the app through one of the handlers registered by
`register_error_handlers`, as `{"status": ..., "message": ...}` with the
status code carried by the error (500 when it has none).
"""
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings

MASKED_MESSAGE = "Something has gone very wrong"


class AppError(Exception):
    def __init__(self, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR, message: str = MASKED_MESSAGE):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class NotFoundError(AppError):
    def __init__(self, message: str):
        super().__init__(status.HTTP_404_NOT_FOUND, message)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, message)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts) or "Invalid request"


def error_response(error: AppError, settings: Settings, headers: Optional[dict] = None) -> JSONResponse:
    message = error.message
    if settings.is_production and error.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        message = MASKED_MESSAGE
    return JSONResponse(
        status_code=error.status_code,
        content={"status": error.status, "message": message},
        headers=headers,
    )


def register_error_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        logger.debug("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
        return error_response(exc, settings)

    # routing errors (unknown path, wrong method) raised by the framework itself
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return error_response(AppError(exc.status_code, str(exc.detail)), settings, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(ValidationError(_validation_message(exc)), settings)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on {} {}", request.method, request.url.path)
        return error_response(AppError(message=str(exc) or MASKED_MESSAGE), settings)
