"""Access log for every HTTP request.

Each line carries the caller, identified the same way the throttle keys it
(``user:<X-User-Id>`` or ``ip:<client>``), so a throttled or failing caller
can be traced across both. The request id is stored on ``request.state`` for
the response envelope and echoed back in the ``X-Request-Id`` header.

Log format:
    INFO [POST] /api/v1/orders 201 (23ms) user:alice req_a1b2c3d4e5f6

Server errors (5xx) are logged at WARNING.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.pm_gateway.middleware.rate_limit import caller_key

logger = logging.getLogger("pm.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s %d (%.0fms) %s %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            caller_key(request),
            request_id,
        )
        response.headers["X-Request-Id"] = request_id
        return response
