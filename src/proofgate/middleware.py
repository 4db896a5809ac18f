"""
ASGI failure boundary (FastAPI/Starlette).
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

log = logging.getLogger(__name__)

REQUEST_FAILED = "Failed to process request"


class FailureBoundaryMiddleware(BaseHTTPMiddleware):
    """
    Turns exceptions that escaped every handler into a logged 500.

    Known errors are translated by the app's exception handlers before they
    reach this point; anything arriving here is an infrastructure fault.

    Example (FastAPI):
        >>> app = FastAPI()
        >>> app.add_middleware(FailureBoundaryMiddleware)
    """

    def __init__(self, app: Any, message: str = REQUEST_FAILED):
        super().__init__(app)
        self.message = message

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception:
            log.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(
                status_code=500,
                content={"status": "failure", "error": self.message},
            )
