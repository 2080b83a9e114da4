"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Rate limiting and error handlers
- Service container lifecycle (startup/shutdown)

Run with:
    uvicorn shortlinks.main:app
"""

import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortlinks.api import endpoints
from shortlinks.core.container import (
    ServiceContainer,
    get_container,
    initialize_services,
    shutdown_services,
)
from shortlinks.core.exceptions import ErrorKind, StoreUnavailableError
from shortlinks.core.rate_limit import limiter
from shortlinks.core.setting import settings
from shortlinks.middleware.logging import add_logging_middleware, configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Shortlinks",
    description="URL shortening with expiring codes and click analytics",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI documentation
    redoc_url="/redoc",  # ReDoc documentation
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    """Store failures are retryable from the caller's point of view."""
    logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable, please retry",
            "error": ErrorKind.STORE_UNAVAILABLE.value,
        },
        headers={"Retry-After": "5"},
    )


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    return {
        "message": "Shortlinks",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check(container: ServiceContainer = Depends(get_container)):
    """
    Health check endpoint for monitoring.

    Returns 503 when the database does not answer.
    """
    try:
        await container.store.ping()
    except StoreUnavailableError:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unreachable"},
        )
    return {"status": "healthy", "database": "ok"}


app.include_router(endpoints.router, tags=["Shortlinks"])


@app.on_event("startup")
async def startup_event():
    await initialize_services(app)


@app.on_event("shutdown")
async def shutdown_event():
    await shutdown_services(app)
