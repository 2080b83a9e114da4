"""
Rate Limiting Configuration

This module provides rate limiting functionality for API endpoints.

Design Decisions:
- Uses slowapi for rate limiting (lightweight, FastAPI-compatible)
- Different limits for different endpoints
- IP-based limiting (in-memory, per application instance)
- Can be switched off with RATE_LIMIT_ENABLED=false (test suites)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from shortlinks.core.setting import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "create": "10/minute",
    "redirect": "100/minute",
    "stats": "30/minute",
    "delete": "10/minute",
    "sweep": "5/minute",
}
