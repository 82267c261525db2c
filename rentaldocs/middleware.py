"""
Request logging middleware.
"""
import time

from fastapi import Request

from .logging_setup import setup_logger

logger = setup_logger(__name__)

SKIP_PATHS = ["/healthz", "/docs", "/openapi.json", "/favicon.ico"]


async def log_request_middleware(request: Request, call_next):
    """
    Log every API request.

    Tracks endpoint, HTTP method, status code, response time, user agent and
    client address.
    """
    if any(request.url.path.startswith(path) for path in SKIP_PATHS):
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    response_time_ms = int((time.time() - start_time) * 1000)

    logger.info("request", extra={
        "endpoint": request.url.path,
        "method": request.method,
        "status_code": response.status_code,
        "response_time_ms": response_time_ms,
        "user_agent": request.headers.get("user-agent", ""),
        "ip_address": request.client.host if request.client else "",
    })
    return response
