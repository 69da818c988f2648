"""
Exception handlers mapping lifecycle errors to HTTP responses.

ValidationError            -> 422 (with field_errors)
PreconditionError          -> 409, or 404 when the ad does not exist
SignatureVerificationError -> 400
GatewayError               -> 502
RecordStoreError           -> 503
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.models import ErrorResponse
from domain.errors import (
    GatewayError,
    PreconditionError,
    RecordStoreError,
    SignatureVerificationError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, detail: str, **extra) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, status_code=status_code, **extra)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(422, "Invalid input", str(exc), field_errors=exc.field_errors)


async def handle_precondition_error(request: Request, exc: PreconditionError) -> JSONResponse:
    if exc.not_found:
        return _error_response(404, "Not found", str(exc))
    return _error_response(409, "Precondition failed", str(exc))


async def handle_signature_error(request: Request, exc: SignatureVerificationError) -> JSONResponse:
    logger.warning("Rejected webhook delivery: %s", exc)
    return _error_response(400, "Webhook Error", str(exc))


async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    return _error_response(502, "Payment gateway error", f"{exc}. Please try again.")


async def handle_record_store_error(request: Request, exc: RecordStoreError) -> JSONResponse:
    logger.error("Record store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(503, "Storage unavailable", "Please try again.")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(PreconditionError, handle_precondition_error)
    app.add_exception_handler(SignatureVerificationError, handle_signature_error)
    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(RecordStoreError, handle_record_store_error)
