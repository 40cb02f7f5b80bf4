"""
Domain exceptions and the JSON error envelope.

Every error leaves the API as
``{"success": false, "error": {code, message, request_id, details}}``.
"""
import logging
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from unipilot.core.logging import request_id_var

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for errors raised by the academic and planning core."""

    status_code = 400
    code = "domain_error"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DomainError):
    """Record absent or owned by another student. The message never says which."""

    status_code = 404
    code = "not_found"

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class InvalidStateError(DomainError):
    status_code = 409
    code = "invalid_state"


class InvalidInputError(DomainError):
    status_code = 400
    code = "invalid_input"


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_envelope(request: Request, code: str, message: str, details=None) -> dict:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
            "details": details,
        },
    }


def error_response(request: Request, *, code: str, message: str, status_code: int, details=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_envelope(request, code, message, details))


async def domain_exception_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("Domain error | code=%s message=%s", exc.code, exc.message)
    return error_response(
        request,
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(
        request,
        code="http_error",
        message=str(exc.detail),
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        request,
        code="validation_error",
        message="Request validation failed",
        status_code=422,
        details=jsonable_encoder(exc.errors()),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception | path=%s", request.url.path, exc_info=exc)
    return error_response(
        request,
        code="internal_error",
        message="Internal server error",
        status_code=500,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["x-request-id"] = request_id
    return response
