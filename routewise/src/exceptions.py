"""
Centralized exception handling for RouteWise API.

This module provides:
- Base APIException class extending FastAPI's HTTPException.
- Custom domain-specific exceptions with appropriate status codes, headers
  and envelope error codes.
- Utility functions for formatting DB errors, logging, and routing exceptions.
- Handlers rendering every error as `{success: false, error: {...}}`.

Usage:
    - Raise specific exceptions in route handlers or services.
    - Use `handle()` to normalize raw exceptions (DB, Redis, Pydantic) into API-friendly responses.
    - Call `registerHandlers()` on every FastAPI application.
"""

from traceback import format_exception
from logging import getLogger
from typing import Any, List
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError
from psycopg2.errorcodes import UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION
from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy import Column


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------
def formatIntegrityError(e: IntegrityError) -> str:
    """
    Format a database integrity error into a user-friendly message.
    """
    diag = getattr(e.orig, "diag", None)
    errorMessage: str = getattr(diag, "message_detail", None) or str(e.orig)
    errorMessage = errorMessage.translate({ord(i): None for i in '\\"\\.\\(\\)'})
    errorMessage = errorMessage.replace("Key ", "For ")
    errorMessage = errorMessage.replace("=", " value ")
    return errorMessage


def integrityErrorState(e: IntegrityError) -> str | None:
    """
    Resolve the SQLSTATE of an integrity error.

    PostgreSQL reports it through psycopg2, other drivers (SQLite in tests)
    only through the message text.
    """
    sqlstate = getattr(e.orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate
    message = str(e.orig).upper()
    if "UNIQUE" in message:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY" in message:
        return FOREIGN_KEY_VIOLATION
    return None


def logException(e: Exception) -> None:
    """Log an exception with traceback using Uvicorn's error logger."""
    detail = str(format_exception(type(e), e, e.__traceback__))
    logger = getLogger("uvicorn.error")
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Provides default handling of status_code, detail, headers and the
    error code rendered in the response envelope.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    headers = None
    code = "BAD_REQUEST"
    details = None

    def __init__(self, *args, details: Any = None, **kwargs):
        kwargs.setdefault("status_code", self.status_code)
        kwargs.setdefault("detail", self.detail)
        kwargs.setdefault("headers", self.headers)
        super().__init__(*args, **kwargs)
        if details is not None:
            self.details = details


# ---------------------------------------------------------------------------
# Exception handling entrypoint
# ---------------------------------------------------------------------------
def handle(e: Exception):
    """
    Normalize and re-raise exceptions as API-friendly errors.

    Converts raw exceptions from DB, Pydantic, Redis, etc. into
    corresponding APIException subclasses.
    """
    if isinstance(e, IntegrityError):
        sqlstate = integrityErrorState(e)
        if sqlstate == UNIQUE_VIOLATION:
            raise UniqueViolation(formatIntegrityError(e))
        if sqlstate == FOREIGN_KEY_VIOLATION:
            raise ForeignKeyViolation(formatIntegrityError(e))
    if isinstance(e, ValidationError):
        details = jsonable_encoder(e.errors(), exclude={"ctx", "url"})
        raise PydanticError(details=details)
    if isinstance(e, APIException):
        raise e
    if isinstance(e, RedisError):
        raise RedisDBError(detail=str(e))

    logException(e)
    raise e


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------
statusCodes = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    status.HTTP_401_UNAUTHORIZED: "AUTHENTICATION_FAILED",
    status.HTTP_403_FORBIDDEN: "AUTHORIZATION_FAILED",
    status.HTTP_404_NOT_FOUND: "RESOURCE_NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_409_CONFLICT: "RESOURCE_ALREADY_EXISTS",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "INVALID_ASSOCIATION",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


def errorEnvelope(code: str, message: str, details: Any = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


async def httpExceptionHandler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc, APIException):
        code = exc.code
        details = exc.details
    else:
        code = statusCodes.get(exc.status_code, "HTTP_ERROR")
        details = None
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=errorEnvelope(code, message, details),
        headers=getattr(exc, "headers", None),
    )


async def requestValidationHandler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=errorEnvelope(
            PydanticError.code,
            PydanticError.detail,
            jsonable_encoder(exc.errors(), exclude={"ctx", "url"}),
        ),
        headers=PydanticError.headers,
    )


async def unhandledExceptionHandler(request: Request, exc: Exception):
    logException(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=errorEnvelope("INTERNAL_SERVER_ERROR", "Internal server error"),
    )


def registerHandlers(app: FastAPI) -> None:
    """Install the envelope renderers on a FastAPI application."""
    app.add_exception_handler(StarletteHTTPException, httpExceptionHandler)
    app.add_exception_handler(RequestValidationError, requestValidationHandler)
    app.add_exception_handler(Exception, unhandledExceptionHandler)


# ---------------------------------------------------------------------------
# Exception Classes
# ---------------------------------------------------------------------------
class PydanticError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid request data"
    headers = {"X-Error": "PydanticError"}
    code = "VALIDATION_ERROR"


class MissingRequiredFields(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Missing required fields"
    headers = {"X-Error": "MissingRequiredFields"}
    code = "VALIDATION_ERROR"

    def __init__(self, fields: List[str] = None):
        if fields:
            super().__init__(detail=f"Missing required fields: {', '.join(fields)}")
        else:
            super().__init__()


class InvalidValue(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InvalidValue"}
    code = "VALIDATION_ERROR"

    def __init__(self, column_name: Column = None):
        name = column_name.name if column_name is not None else "value"
        super().__init__(detail=f"Invalid {name} is provided")


class InvalidOnboardingData(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Onboarding data is incomplete or invalid"
    headers = {"X-Error": "InvalidOnboardingData"}
    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[dict] = None):
        super().__init__(details=errors or [])


class NoOrganization(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "No organization found. Please create an organization first."
    headers = {"X-Error": "NoOrganization"}
    code = "VALIDATION_ERROR"


class UniqueViolation(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "UniqueViolation"}
    code = "RESOURCE_ALREADY_EXISTS"

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(detail=detail)


class ForeignKeyViolation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "ForeignKeyViolation"}
    code = "INVALID_ASSOCIATION"

    def __init__(self, detail: str = "Referenced resource does not exist"):
        super().__init__(detail=detail)


class InvalidAssociation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "InvalidAssociation"}
    code = "INVALID_ASSOCIATION"

    def __init__(self, column_name_1: Column, column_name_2: Column):
        detail = f"The {column_name_1.name} is not associated with {column_name_2.name}"
        super().__init__(detail=detail)


class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid email or password"
    headers = {"X-Error": "InvalidCredentials"}
    code = "AUTHENTICATION_FAILED"


class InactiveAccount(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Account is inactive"
    headers = {"X-Error": "InactiveAccount"}
    code = "ACCOUNT_INACTIVE"


class Unauthenticated(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication required"
    headers = {"X-Error": "Unauthenticated"}
    code = "AUTHENTICATION_FAILED"


class InvalidToken(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid or expired token"
    headers = {"X-Error": "InvalidToken"}
    code = "AUTHENTICATION_FAILED"


class InvalidResetToken(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid or expired reset token"
    headers = {"X-Error": "InvalidResetToken"}
    code = "INVALID_TOKEN"


class NoPermission(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Insufficient permissions"
    headers = {"X-Error": "NoPermission"}
    code = "AUTHORIZATION_FAILED"


class ForeignOwnership(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    headers = {"X-Error": "ForeignOwnership"}
    code = "AUTHORIZATION_FAILED"

    def __init__(self, orm_class):
        detail = f"The {orm_class.__name__} belongs to another user"
        super().__init__(detail=detail)


class TenantRequired(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Tenant access required"
    headers = {"X-Error": "TenantRequired"}
    code = "AUTHORIZATION_FAILED"


class InvalidIdentifier(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Invalid ID provided"
    headers = {"X-Error": "InvalidIdentifier"}
    code = "RESOURCE_NOT_FOUND"


class UnknownResource(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    headers = {"X-Error": "UnknownResource"}
    code = "RESOURCE_NOT_FOUND"

    def __init__(self, orm_class):
        detail = f"{orm_class.__name__} not found"
        super().__init__(detail=detail)


class LockAcquireTimeout(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    headers = {"X-Error": "LockAcquireTimeout"}
    detail = "Lock acquisition timed out"
    code = "SERVICE_UNAVAILABLE"


class RedisDBError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    headers = {"X-Error": "RedisAPIError"}
    code = "SERVICE_UNAVAILABLE"

    def __init__(self, detail: str):
        super().__init__(detail=detail)
