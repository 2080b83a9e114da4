"""
Logging Setup and Request/Response Logging Middleware

configure_logging sets up the standard library root logger once per process.

The middleware logs every HTTP request with:
- Request method and path
- Response status code
- Request processing time
- Client IP address

Redirect latency includes the click write, so the logged time is what the
visitor actually waited for.
"""

import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from shortlinks.services.geolocation import client_ip_from_headers

logger = logging.getLogger("shortlinks.access")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger (no-op if handlers are already installed)."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("shortlinks").setLevel(level.upper())


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.

    Also exposes the processing time in the X-Process-Time header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = client_ip_from_headers(
            request.headers,
            request.client.host if request.client else None,
        )
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            process_time = time.perf_counter() - start_time
            logger.exception(
                f"{request.method} {request.url.path} failed after "
                f"{process_time*1000:.2f}ms IP:{client_ip}"
            )
            raise

        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        logger.info(
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        return response


def add_logging_middleware(app: FastAPI) -> None:
    app.add_middleware(LoggingMiddleware)
