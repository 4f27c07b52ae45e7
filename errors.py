"""Error types raised by the resolver and the helpers that turn them into API responses."""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class IdentityError(Exception):
    """Base class for failures inside identity resolution."""


class ValidationError(IdentityError):
    """Neither an email nor a phone number was supplied."""


class StoreError(IdentityError):
    """The contact store could not complete the transaction."""


class ConsistencyViolation(IdentityError):
    """Stored contacts break the cluster invariants."""


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Error carrying an HTTP status and the standard error body."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = build_error_payload(code, message, details)


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)
