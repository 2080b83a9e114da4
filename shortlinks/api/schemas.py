"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Target URL, validity and shortcode are accepted as plain values here and
validated by the lifecycle service, so every input problem is reported the
same way (400 with error kind) instead of as a framework 422.

All timestamps are UTC.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    """Request model for shortcode creation."""
    url: str = Field(..., description="The long URL to shorten (http or https)")
    validity: Optional[int] = Field(
        default=None,
        description="Validity in minutes, 1-1440 (default: 30)"
    )
    shortcode: Optional[str] = Field(
        default=None,
        description="Custom shortcode, 3-20 characters of [A-Za-z0-9_-]"
    )


class ShortenResponse(BaseModel):
    """Response model for shortcode creation."""
    code: str = Field(..., description="The assigned shortcode (lowercase)")
    short_link: str = Field(..., description="The complete short URL")
    expires_at: datetime = Field(..., description="When the link stops resolving")


class GeoLocationResponse(BaseModel):
    country: str
    region: str
    city: str
    ip: str


class ClickEventResponse(BaseModel):
    timestamp: datetime
    referrer: str
    geo_location: GeoLocationResponse
    user_agent: Optional[str] = None


class StatsResponse(BaseModel):
    """Response model for statistics endpoint."""
    code: str
    short_link: str
    target_url: str
    created_at: datetime
    expires_at: datetime
    click_count: int
    click_history: List[ClickEventResponse]


class DeleteResponse(BaseModel):
    message: str


class SweepResponse(BaseModel):
    deactivated: int = Field(..., description="Number of expired shortcodes deactivated")


class ErrorResponse(BaseModel):
    detail: str
    error: str
