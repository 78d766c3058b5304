"""Request latency logging middleware."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Accept and remove make several sequential store round trips
SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000

HEALTH_PATHS = ("/health", "/health/ready")


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, path, status and latency for every request.

    Health probes are only logged at debug level. Slow requests, server
    errors and client errors are raised to warning or error.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start_time = time.perf_counter()
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500
        log_msg = "%s %s - %d - %.2fms"
        args = (request.method, request.url.path, status_code, latency_ms)
        extra = {"status_code": status_code, "latency_ms": round(latency_ms, 2)}

        if request.url.path in HEALTH_PATHS:
            logger.debug(log_msg, *args, extra=extra)
        elif status_code >= 500 or latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error(log_msg, *args, extra=extra)
        elif status_code >= 400 or latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning(log_msg, *args, extra=extra)
        else:
            logger.info(log_msg, *args, extra=extra)
