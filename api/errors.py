"""
api/errors.py — Error Envelope
===============================
Maps registry errors onto HTTP responses. Every failure leaves the API as

    {"status": "error", "message": "...", "errors": [...]}

    ValidationError            400
    NotFoundError              404
    ReferentialIntegrityError  409
    TransactionFailure         500
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import (
    NotFoundError, ReferentialIntegrityError, RegistryError, TransactionFailure, ValidationError,
)

logger = logging.getLogger("pwdregistry.api")

STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    ReferentialIntegrityError: 409,
    TransactionFailure: 500,
}


def status_code_for(exc: RegistryError) -> int:
    for error_type, code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return 500


def error_body(message: str, errors=None) -> dict:
    return {"status": "error", "message": message, "errors": list(errors or [])}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError):
        code = status_code_for(exc)
        if code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=code, content=error_body(exc.message, exc.errors))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return JSONResponse(status_code=400, content=error_body("Invalid request", errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)))
