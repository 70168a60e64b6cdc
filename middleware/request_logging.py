# middleware/request_logging.py
# Request id + latency logging for every API call

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from cbt.core.logging_config import get_api_logger, log_api_request


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, logger=None):
        super().__init__(app)
        self.logger = logger or get_api_logger()

    @staticmethod
    def generate_request_id() -> str:
        return f'req_{uuid.uuid4().hex[:12]}'

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get('X-Request-ID') or self.generate_request_id()
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(
                f"Unhandled error on {request.method} {request.url.path}",
                extra={"request_id": request_id},
            )
            raise

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        response.headers['X-Request-ID'] = request_id
        log_api_request(
            self.logger,
            request.method,
            request.url.path,
            status_code=response.status_code,
            response_time_ms=elapsed_ms,
            request_id=request_id,
        )
        return response
