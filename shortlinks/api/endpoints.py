"""
FastAPI Endpoints for the Shortcode Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request validation (Pydantic models)
- Authentication and rate limiting
- Mapping operation results to HTTP responses
- Delegating to service layer

All business logic is in services. Services return Ok/Err results; the HTTP
status for each error kind is decided here and nowhere else.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from shortlinks.api.deps import require_identity
from shortlinks.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    ShortenRequest,
    ShortenResponse,
    StatsResponse,
    SweepResponse,
)
from shortlinks.core.container import ServiceContainer, get_container
from shortlinks.core.exceptions import ErrorKind
from shortlinks.core.rate_limit import RATE_LIMITS, limiter
from shortlinks.core.result import Err
from shortlinks.core.security import Identity
from shortlinks.services.geolocation import client_ip_from_headers
from shortlinks.services.redirect_service import ClickContext


router = APIRouter()

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.EXPIRED: status.HTTP_410_GONE,
    ErrorKind.EXHAUSTED_ATTEMPTS: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"description": "Missing or invalid bearer token"},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    410: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def error_response(err: Err) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND[err.kind],
        content={"detail": err.detail, "error": err.kind.value},
    )


@router.post(
    "/shorturls",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version with a unique or custom code"
)
@limiter.limit(RATE_LIMITS["create"])
async def create_short_url(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: ShortenRequest,
    identity: Identity = Depends(require_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Create a new shortcode.

    Returns:
        ShortenResponse with code, short_link and expires_at
    """
    result = await container.shortcodes.create(
        body.url,
        validity_minutes=body.validity,
        custom_code=body.shortcode,
        created_by=identity.subject,
    )
    if not result.ok:
        return error_response(result)

    record = result.value
    return ShortenResponse(
        code=record.code,
        short_link=container.shortcodes.short_link(record.code),
        expires_at=record.expires_at,
    )


@router.post(
    "/shorturls/sweep",
    response_model=SweepResponse,
    summary="Deactivate expired short URLs",
    description="Runs the expiry sweep on demand and returns how many codes were deactivated"
)
@limiter.limit(RATE_LIMITS["sweep"])
async def sweep_expired(
    request: Request,
    identity: Identity = Depends(require_identity),
    container: ServiceContainer = Depends(get_container),
) -> SweepResponse:
    deactivated = await container.sweeper.sweep()
    return SweepResponse(deactivated=deactivated)


@router.get(
    "/shorturls/{short_code}",
    response_model=StatsResponse,
    responses=ERROR_RESPONSES,
    summary="Get URL statistics",
    description="Returns click count and the most recent click events of an active short URL"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_url_stats(
    short_code: str,
    request: Request,
    identity: Identity = Depends(require_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Get statistics for a shortcode.

    Raises:
        400 for a malformed code, 404 if unknown or deleted, 410 if expired
    """
    result = await container.stats.get_stats(short_code)
    if not result.ok:
        return error_response(result)
    return StatsResponse(**result.value)


@router.delete(
    "/shorturls/{short_code}",
    response_model=DeleteResponse,
    responses=ERROR_RESPONSES,
    summary="Delete a short URL",
    description="Deactivates the code permanently; the code is never reissued"
)
@limiter.limit(RATE_LIMITS["delete"])
async def delete_short_url(
    short_code: str,
    request: Request,
    identity: Identity = Depends(require_identity),
    container: ServiceContainer = Depends(get_container),
):
    result = await container.shortcodes.deactivate(short_code)
    if not result.ok:
        return error_response(result)
    return DeleteResponse(message="URL deleted successfully")


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    responses=ERROR_RESPONSES,
    summary="Redirect to original URL",
    description="Takes a short code, records the click and redirects to the original long URL"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    short_code: str,
    request: Request,
    container: ServiceContainer = Depends(get_container),
):
    """
    Redirect to the target URL for a given short code.

    The click (timestamp, referrer, location, user agent) is stored before
    the redirect response is produced.

    Returns:
        RedirectResponse (HTTP 302) to the target URL
    """
    context = ClickContext(
        ip=client_ip_from_headers(
            request.headers,
            request.client.host if request.client else None,
        ),
        referrer=request.headers.get("Referer"),
        user_agent=request.headers.get("User-Agent"),
    )

    result = await container.redirects.resolve_and_record(short_code, context)
    if not result.ok:
        return error_response(result)

    return RedirectResponse(
        url=result.value,
        status_code=status.HTTP_302_FOUND
    )
