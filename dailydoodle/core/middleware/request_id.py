"""
Request correlation for the API.

Every response carries `x-request-id`. A caller-supplied id is reused when it
looks like an id (Stripe and the SPA both send their own); anything else is
replaced with a fresh uuid so log lines stay parseable.
"""
import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from dailydoodle.core.logging import latency_bucket_ms, log_event, request_id_ctx_var

REQUEST_ID_HEADER = "x-request-id"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def accept_request_id(value):
    if value and _VALID_REQUEST_ID.match(value):
        return value
    return str(uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = accept_request_id(request.headers.get(self.header_name))
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[self.header_name] = rid
        status = response.status_code
        log_event(
            "error" if status >= 500 else "info",
            "request.complete",
            request_id=rid,
            status=status,
            extra={
                "method": request.method,
                "path": request.url.path,
                "latency_bucket": latency_bucket_ms(elapsed_ms),
            },
        )
        return response
