"""Chain error taxonomy.

Services raise these; the API layer maps every ChainError to a JSON body
carrying ``error_code`` and ``message``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Conflict sub-codes
ALREADY_LINKED = "ALREADY_LINKED"
OTP_ALREADY_USED = "OTP_ALREADY_USED"
VERDICT_ALREADY_RECORDED = "VERDICT_ALREADY_RECORDED"
SEQUENCE_CONTENTION = "SEQUENCE_CONTENTION"


class ChainError(Exception):
    """Base exception for chain and public status operations."""

    status_code = 500
    default_code = "CHAIN_ERROR"

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class ValidationError(ChainError):
    """Input rejected by a business rule."""

    status_code = 422
    default_code = "VALIDATION_ERROR"


class ConflictError(ChainError):
    """Linkage, single-use or allocation conflict."""

    status_code = 409
    default_code = ALREADY_LINKED


class IntegrityError(ChainError):
    """Stored signature does not match the recomputed one."""

    status_code = 409
    default_code = "INTEGRITY_VIOLATION"


class ExpiredError(ChainError):
    """OTP or access token is past its expiry or exhausted."""

    status_code = 410
    default_code = "EXPIRED"


class NotFoundError(ChainError):
    """Referenced entity or credential does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier=None, code: str = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} '{identifier}' not found"
        super().__init__(message, code)


class AccessDeniedError(ChainError):
    """Caller's role or assignment does not allow the operation."""

    status_code = 403
    default_code = "ACCESS_DENIED"


async def chain_error_handler(request: Request, exc: ChainError) -> JSONResponse:
    """Render a ChainError as a JSON response."""
    correlation_id = getattr(request.state, "correlation_id", None)
    logger.info(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.code}",
        extra={"correlation_id": correlation_id, "error_code": exc.code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.code, "message": exc.message},
    )


def setup_error_handlers(app: FastAPI):
    """Register chain error handlers on the app."""
    app.add_exception_handler(ChainError, chain_error_handler)
