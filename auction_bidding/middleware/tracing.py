"""
Request tracing middleware
"""
import time
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from auction_bidding.core.logging_config import set_trace_id, generate_trace_id

logger = logging.getLogger(__name__)


class TracingMiddleware(BaseHTTPMiddleware):
    """Attach a trace ID to every request and log its outcome"""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get('X-Trace-ID') or generate_trace_id()
        set_trace_id(trace_id)

        start_time = time.perf_counter()
        request_info = {
            'method': request.method,
            'path': request.url.path,
            'client_ip': request.client.host if request.client else None,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={**request_info, 'duration_ms': round(duration_ms, 2), 'error': str(e)},
                exc_info=True
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={**request_info, 'status_code': response.status_code, 'duration_ms': round(duration_ms, 2)}
        )

        response.headers['X-Trace-ID'] = trace_id
        return response
