"""Translate domain exceptions into HTTP responses at the request boundary"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from finboard.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logging.info(f"Validation failed: {exc.fields}", extra={"request_id": _request_id(request)})
    return JSONResponse(status_code=400, content={"error": exc.message, "fields": exc.errors})


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters rejected by FastAPI itself"""
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err["loc"] if part not in ("body", "query", "path")]
        fields.append({"field": ".".join(loc) or "body", "message": err["msg"]})
    return JSONResponse(status_code=400, content={"error": "Validation failed", "fields": fields})


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    logging.warning(f"Access denied: {exc}", extra={"request_id": _request_id(request)})
    return JSONResponse(status_code=403, content={"error": "Forbidden"})


async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    # Storage detail is logged where the error is raised, never returned
    logging.error(f"Persistence error: {exc}", extra={"request_id": _request_id(request)})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
