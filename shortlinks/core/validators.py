"""
Input Validators and Sanitizers

This module validates and normalizes everything a caller can hand us:
shortcodes, target URLs and validity periods.

Security Considerations:
- Shortcodes are restricted to [A-Za-z0-9_-] so they are safe in paths and queries
- Only http/https targets are accepted (no javascript:, data:, file: redirects)
- Length limits prevent DoS attacks
"""

import re
from typing import Iterable, Optional, TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

from shortlinks.core.exceptions import (
    InvalidURLError,
    ShortcodeUnavailableError,
    ValidationFailedError,
)

if TYPE_CHECKING:
    from shortlinks.db.store import ShortcodeStore


SHORTCODE_MIN_LENGTH = 3
SHORTCODE_MAX_LENGTH = 20
SHORTCODE_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

MAX_URL_LENGTH = 2048  # RFC 7230 practical limit
ALLOWED_SCHEMES = {'http', 'https'}
MALICIOUS_PATTERNS = ('javascript:', 'data:', 'file:', 'vbscript:')


def normalize_shortcode(short_code: str) -> str:
    """Shortcodes are case-insensitive; the canonical form is lowercase."""
    return short_code.strip().lower()


def validate_format(short_code: Optional[str]) -> str:
    """
    Check shortcode length and charset.

    Args:
        short_code: User-supplied or generated code

    Returns:
        The normalized (stripped, lowercase) code

    Raises:
        ValidationFailedError: If the code is missing, too short/long or has
            characters outside [A-Za-z0-9_-]
    """
    if not short_code or not isinstance(short_code, str):
        raise ValidationFailedError("Shortcode is required", field="shortcode")

    short_code = short_code.strip()

    if len(short_code) < SHORTCODE_MIN_LENGTH:
        raise ValidationFailedError(
            f"Shortcode must be at least {SHORTCODE_MIN_LENGTH} characters long",
            field="shortcode"
        )
    if len(short_code) > SHORTCODE_MAX_LENGTH:
        raise ValidationFailedError(
            f"Shortcode cannot exceed {SHORTCODE_MAX_LENGTH} characters",
            field="shortcode"
        )
    if not SHORTCODE_PATTERN.match(short_code):
        raise ValidationFailedError(
            "Shortcode can only contain letters, numbers, hyphens, and underscores",
            field="shortcode"
        )

    return normalize_shortcode(short_code)


def is_reserved(short_code: str, reserved: Iterable[str]) -> bool:
    """Reserved words collide with routes and are never assignable."""
    code = normalize_shortcode(short_code)
    return any(code == word.lower() for word in reserved)


async def check_availability(
    short_code: str,
    store: "ShortcodeStore",
    reserved: Iterable[str],
) -> None:
    """
    Ensure a custom code can be assigned.

    Issued codes stay taken forever, including deactivated and expired ones,
    so an old link can never start pointing somewhere new.

    Raises:
        ShortcodeUnavailableError: If the code is reserved or was ever issued
        StoreUnavailableError: If the existence check cannot reach the store
    """
    code = normalize_shortcode(short_code)
    if is_reserved(code, reserved):
        raise ShortcodeUnavailableError(code, "This shortcode is reserved and cannot be used")
    if await store.exists(code):
        raise ShortcodeUnavailableError(code, "This shortcode is already in use")


def is_valid_url(url: str) -> bool:
    """
    Validate URL format and security.

    Checks that URL uses http/https, has valid domain, and doesn't contain
    malicious patterns.

    Args:
        url: The URL string to validate

    Returns:
        True if valid and safe, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > MAX_URL_LENGTH:
        return False

    try:
        result = urlsplit(url)
        # Accessing .port validates it
        result.port
    except ValueError:
        return False

    if not result.scheme or not result.netloc or not result.hostname:
        return False

    if result.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    if result.hostname != 'localhost' and '.' not in result.hostname:
        return False

    url_lower = url.lower()
    if any(pattern in url_lower for pattern in MALICIOUS_PATTERNS):
        return False

    return True


def normalize_url(url: str) -> str:
    """
    Canonical form of a target URL.

    Lowercases scheme and host, turns an empty path into "/", and drops a
    single trailing slash from any non-root path. Query and fragment are kept.

    Example:
        normalize_url("HTTPS://Example.com") -> "https://example.com/"
        normalize_url("https://example.com/a/") -> "https://example.com/a"
    """
    parts = urlsplit(url.strip())

    netloc = parts.netloc
    host = parts.hostname or ""
    if host:
        userinfo, _, hostport = netloc.rpartition('@')
        hostport = hostport.lower()
        netloc = f"{userinfo}@{hostport}" if userinfo else hostport

    path = parts.path or "/"
    if path.endswith("/") and path != "/":
        path = path[:-1]

    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def validate_target_url(url: Optional[str]) -> str:
    """
    Validate and normalize a target URL.

    Raises:
        InvalidURLError: If the URL is not a well-formed http/https URL
    """
    if not url:
        raise ValidationFailedError("URL is required", field="url")
    if not is_valid_url(url.strip()):
        raise InvalidURLError(
            url,
            reason="Invalid URL format. URL must use http:// or https:// and have a valid domain"
        )
    return normalize_url(url)


def validate_validity(
    validity_minutes: Optional[int],
    default: int = 30,
    maximum: int = 1440,
) -> int:
    """
    Resolve the validity period of a new shortcode.

    Args:
        validity_minutes: Requested validity, or None for the default
        default: Validity used when none is requested
        maximum: Largest accepted value

    Returns:
        Validity in minutes, within [1, maximum]

    Raises:
        ValidationFailedError: If the value is not an integer in [1, maximum]
    """
    if validity_minutes is None:
        return default
    if isinstance(validity_minutes, bool) or not isinstance(validity_minutes, int):
        raise ValidationFailedError("Validity must be an integer", field="validity")
    if validity_minutes < 1:
        raise ValidationFailedError("Validity must be at least 1 minute", field="validity")
    if validity_minutes > maximum:
        raise ValidationFailedError(
            f"Validity cannot exceed {maximum} minutes",
            field="validity"
        )
    return validity_minutes
