"""
Exception handlers translating domain errors into enveloped HTTP responses.

Domain errors are expected outcomes of a flow; they are mapped by class (the
first match along the MRO wins) and never logged as faults. Anything else is
an internal failure: logged with its traceback, reported generically.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from phoneauth.domain.errors import (
    CodeExpired,
    CodeInvalid,
    CooldownActive,
    DomainError,
    GatewayUnavailable,
    IdentityNotFound,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    MaxAttemptsExceeded,
    PhoneAlreadyRegistered,
    RateLimited,
    SessionNotFound,
    TokenExpired,
    Unauthorized,
)
from phoneauth.presentation.envelope import error_response

logger = logging.getLogger(__name__)

_DOMAIN_ERRORS: dict[type[DomainError], tuple[int, str]] = {
    InvalidInput: (status.HTTP_400_BAD_REQUEST, "invalid input"),
    CooldownActive: (status.HTTP_429_TOO_MANY_REQUESTS, "otp cooldown active"),
    RateLimited: (status.HTTP_429_TOO_MANY_REQUESTS, "too many otp requests"),
    CodeExpired: (status.HTTP_401_UNAUTHORIZED, "otp expired or not found"),
    CodeInvalid: (status.HTTP_401_UNAUTHORIZED, "invalid otp"),
    MaxAttemptsExceeded: (status.HTTP_429_TOO_MANY_REQUESTS, "too many attempts"),
    SessionNotFound: (status.HTTP_401_UNAUTHORIZED, "invalid or expired session"),
    PhoneAlreadyRegistered: (status.HTTP_409_CONFLICT, "phone already registered"),
    IdentityNotFound: (status.HTTP_404_NOT_FOUND, "not found"),
    InvalidToken: (status.HTTP_401_UNAUTHORIZED, "invalid token"),
    TokenExpired: (status.HTTP_401_UNAUTHORIZED, "token expired"),
    InvalidCredentials: (status.HTTP_401_UNAUTHORIZED, "invalid credentials"),
    Unauthorized: (status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    GatewayUnavailable: (status.HTTP_502_BAD_GATEWAY, "otp delivery failed"),
}

# these carry a client-facing message; other errors may hold internal detail
_MESSAGE_IS_PUBLIC = (InvalidInput, InvalidCredentials, IdentityNotFound)


def describe_domain_error(exc: DomainError) -> tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in _DOMAIN_ERRORS:
            code, description = _DOMAIN_ERRORS[cls]
            break
    else:
        code, description = status.HTTP_400_BAD_REQUEST, "request failed"

    if isinstance(exc, _MESSAGE_IS_PUBLIC) and str(exc):
        description = str(exc)
    return code, description


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    code, description = describe_domain_error(exc)
    logger.info(
        "request rejected",
        extra={
            "path": request.url.path,
            "error": type(exc).__name__,
            "status_code": code,
        },
    )
    return error_response(code, description)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    description = "invalid payload"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "")
        description = f"invalid payload: {field}: {message}" if field else description
    return error_response(status.HTTP_400_BAD_REQUEST, description)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error", extra={"path": request.url.path, "method": request.method}
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
