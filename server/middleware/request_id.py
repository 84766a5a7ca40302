"""
Request ID middleware for request tracing.

Generates or propagates the X-Request-ID header and exposes it to the
logging context, so every log line a request produces can be correlated.
"""

import logging
import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from logging_config import request_id_var

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware for request ID generation and propagation.

    - Reuses X-Request-ID from the incoming request when present
    - Generates a new UUID otherwise
    - Sets request_id in the logging context var for the request's lifetime
    - Echoes X-Request-ID on the response
    """

    def __init__(
        self,
        app,
        header_name: str = "X-Request-ID",
        generator: Optional[Callable[[], str]] = None,
    ):
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator or (lambda: str(uuid.uuid4()))

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(self.header_name) or self.generator()
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
            return response
        finally:
            request_id_var.reset(token)
