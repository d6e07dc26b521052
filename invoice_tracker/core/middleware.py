from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from typing import Callable
import logging
import time

logger = logging.getLogger(__name__)

class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        endpoint = request.url.path
        method = request.method
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"{method} {endpoint} FAILED after {elapsed_ms:.1f} ms: {e}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.INFO if response.status_code < 500 else logging.ERROR
        logger.log(level, f"{method} {endpoint} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response
