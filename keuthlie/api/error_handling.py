from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from keuthlie.api.schemas import Envelope
from keuthlie.logging import get_logger
from keuthlie.service.errors import (
    MalformedInput,
    ServerError,
    ServiceError,
    TokenRejected,
)

logger = get_logger(__name__)


def _error_response(status_code: int, code: int, message: str) -> JSONResponse:
    envelope = Envelope.failure(code, message)
    return JSONResponse(status_code=status_code, content=envelope.body())


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers mapping every failure onto the numeric error envelope."""

    @app.exception_handler(TokenRejected)
    async def handle_token_rejected(request: Request, exc: TokenRejected):
        # sub-reason stays in the log; the response is the same for all of them
        logger.warning(
            "token_rejected_response",
            path=request.url.path,
            reason=exc.reason,
        )
        return _error_response(
            TokenRejected.status_code, TokenRejected.code, TokenRejected.public_message
        )

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(
                "service_error",
                path=request.url.path,
                method=request.method,
                error_type=type(exc).__name__,
                message=exc.message,
                detail=exc.detail,
            )
            # internal text never crosses the boundary
            return _error_response(
                ServerError.status_code, ServerError.code, ServerError.public_message
            )
        logger.warning(
            "service_error",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_code=exc.code,
        )
        return _error_response(exc.status_code, exc.code, exc.public_message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.warning(
            "request_validation_error",
            path=request.url.path,
            method=request.method,
            errors=len(exc.errors()),
        )
        return _error_response(
            MalformedInput.status_code, MalformedInput.code, MalformedInput.public_message
        )

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.exception(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )
        return _error_response(
            ServerError.status_code, ServerError.code, ServerError.public_message
        )
