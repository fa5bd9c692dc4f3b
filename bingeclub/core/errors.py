# API error types and JSON error-shape handlers
# bingeclub/core/errors.py

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """
    HTTPException carrying the `{error, message}` body used by every endpoint.

    `error` is a short, stable description of what failed; `message` is the
    optional detail (usually the underlying exception text).
    """
    def __init__(
        self,
        status_code: int,
        error: str,
        message: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error = error
        self.message = message
        super().__init__(status_code=status_code, detail=error, headers=headers)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class BadRequestError(ApiError):
    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, error, message)


class NotFoundError(ApiError):
    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(status.HTTP_404_NOT_FOUND, error, message)


class UpstreamError(ApiError):
    """Store or metadata-provider failure surfaced at the handler boundary."""
    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, error, message)


# --- Exception handlers (registered in server.py) ---

async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, ApiError):
        body = exc.to_body()
    elif exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        # Starlette's default for an unmatched path
        body = {"error": "Route not found"}
    else:
        body = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Something went wrong!", "message": str(exc)},
    )
