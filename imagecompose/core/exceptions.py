"""
Global Exception Handling

Typed errors raised by the compositor and structured error responses
for the HTTP layer.
"""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from imagecompose.core.logging import get_logger, batch_id_var

logger = get_logger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class CompositorBaseException(Exception):
    """Base exception for the compose service."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.stage = stage
        self.details = details or {}
        super().__init__(self.message)


class InsufficientAreaError(CompositorBaseException):
    """Raised when the target area minus padding cannot hold the product."""

    def __init__(self, message: str = "Insufficient white area for the product.", **kwargs):
        super().__init__(message, code=422, **kwargs)


class MissingInputImageError(CompositorBaseException):
    """Raised when a required binary property is absent on an item."""

    def __init__(self, property_name: str, **kwargs):
        super().__init__(
            f"Item has no binary property '{property_name}'",
            code=400,
            **kwargs
        )
        self.details["property"] = property_name


class SelectionPreconditionError(CompositorBaseException):
    """Raised when the preferred placement region does not exist on the background."""

    def __init__(self, preference: str, **kwargs):
        super().__init__(
            f"No '{preference}' white region exists on the background",
            code=422,
            **kwargs
        )
        self.details["preference"] = preference


class CodecError(CompositorBaseException):
    """Raised when decoding, transforming or encoding an image fails."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, code=415, **kwargs)
        self.details["operation"] = operation


class InvalidItemError(CompositorBaseException):
    """Raised when an item payload is malformed (e.g. bad base64)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=400, **kwargs)


# =============================================================================
# Error Payloads
# =============================================================================

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_payload(exc: CompositorBaseException) -> Dict[str, Any]:
    """Convert a compositor exception to the structured error body."""
    return {
        "error": exc.message,
        "batch_id": batch_id_var.get(),
        "code": exc.code,
        "stage": exc.stage,
        "details": exc.details,
        "timestamp": _timestamp()
    }


def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(CompositorBaseException)
    async def compositor_exception_handler(request: Request, exc: CompositorBaseException):
        logger.error(
            "compositor_exception",
            error=exc.message,
            code=exc.code,
            stage=exc.stage,
            details=exc.details
        )

        return JSONResponse(
            status_code=exc.code,
            content=error_payload(exc)
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "batch_id": batch_id_var.get(),
                "code": 500,
                "timestamp": _timestamp()
            }
        )
