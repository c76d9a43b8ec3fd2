"""
Error taxonomy
==============

Exceptions raised by the token guard and the route handlers. Everything that
maps straight onto an HTTP status is an ``HTTPException`` so FastAPI renders
it with its usual ``{"detail": ...}`` body.

``ProviderActionFailed`` is different: it never reaches the client as an
error. The like/retweet handlers catch it and report ``success: false`` with
the provider's error payload instead.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AuthenticationRequired(HTTPException):
    """The request carried no usable access/refresh token."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status_code=401, detail=detail)


class AuthenticationFailed(HTTPException):
    """Twitter rejected the credentials or the refresh grant failed."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status_code=401, detail=detail)


class ValidationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class ProviderActionFailed(Exception):
    """
    A write action (like, retweet) was refused by Twitter or never reached it.

    Attributes:
        payload (Dict[str, Any]): JSON-serializable description of the failure,
            embedded as ``data`` in the handler's response
    """

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.payload = payload if payload is not None else {"error": message}


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for anything the routes did not handle; never leaks details."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred"})
