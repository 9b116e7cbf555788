import logging
from fastapi import FastAPI, Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.errors import OrderServiceError
from app.schemas.response import ErrorDetail, ErrorResponse

log = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message, details=None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details or None))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# ----------- Exception Handlers (called by FastAPI) -----------

def order_error_handler(request: Request, exc: OrderServiceError):
    """Maps domain errors to their HTTP status; context goes out as ``details``."""
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    log.log(level, "%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.code, exc.message, jsonable_encoder(exc.context))


def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 404, 400)."""
    return _error_response(exc.status_code, "http_error", exc.detail)


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request bodies and query params that fail schema validation (422)."""
    log.info("Rejected %s %s: %s error(s)", request.method, request.url.path, len(exc.errors()))
    return _error_response(422, "validation_error", "Invalid input data", jsonable_encoder(exc.errors()))


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    log.error("Unhandled exception on path: %s", request.url.path, exc_info=exc)
    return _error_response(500, "server_error", "Internal Server Error")


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""
    app.add_exception_handler(OrderServiceError, order_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
