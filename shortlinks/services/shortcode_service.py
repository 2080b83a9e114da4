"""
Shortcode Lifecycle Service

This service handles the core business logic of a shortcode's life:
- Creation: validate URL and validity, pick or check the code, persist
- Lookup: resolve a code to a record that is active and not expired
- Deactivation: terminal soft delete

Design Decisions:
- Expected failures (bad input, taken codes, unknown or expired codes) are
  returned as Err results; only StoreUnavailableError is raised
- The custom-code path checks availability for a friendly error, but the
  unique index is what decides a race: the loser gets Conflict
- Lookups distinguish NotFound (never issued, or deactivated) from Expired
  (still active but past expires_at) with a second, expiry-agnostic query
- The service never mutates records in place; every state change is a
  single store call
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from shortlinks.core.exceptions import (
    ErrorKind,
    ShortCodeNotFoundError,
    ShortcodeExpiredError,
    StoreUnavailableError,
    URLShortenerException,
    ValidationFailedError,
)
from shortlinks.core.result import Err, Ok, Result
from shortlinks.core.validators import (
    check_availability,
    validate_format,
    validate_target_url,
    validate_validity,
)
from shortlinks.db.models import CREATED_BY_MAX_LENGTH, ShortcodeRecord, utcnow
from shortlinks.db.store import ShortcodeStore
from shortlinks.services.shortcode_generator import ShortcodeGenerator

logger = logging.getLogger(__name__)


class ShortcodeService:
    """
    Create, resolve and deactivate shortcodes.

    Args:
        store: Record store
        generator: Random code generator used when no custom code is given
        base_url: Public origin short links are built on
        default_validity: Minutes used when a request gives no validity
        max_validity: Largest accepted validity in minutes
        max_attempts: Generator budget per creation
        reserved: Codes that can never be assigned
        clock: Source of "now" (naive UTC)
    """

    def __init__(
        self,
        store: ShortcodeStore,
        generator: ShortcodeGenerator,
        base_url: str,
        default_validity: int = 30,
        max_validity: int = 1440,
        max_attempts: int = 10,
        reserved: Iterable[str] = (),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.generator = generator
        self.base_url = base_url.rstrip("/")
        self.default_validity = default_validity
        self.max_validity = max_validity
        self.max_attempts = max_attempts
        self.reserved = tuple(reserved)
        self.clock = clock

    def short_link(self, code: str) -> str:
        return f"{self.base_url}/{code}"

    async def create(
        self,
        target_url: str,
        validity_minutes: Optional[int] = None,
        custom_code: Optional[str] = None,
        created_by: str = "system",
    ) -> Result[ShortcodeRecord]:
        """
        Create a new shortcode.

        Args:
            target_url: Absolute http/https URL to redirect to
            validity_minutes: Lifetime in minutes, [1, max_validity], default 30
            custom_code: Caller-chosen code; generated when omitted
            created_by: Identity subject of the caller

        Returns:
            Ok(ShortcodeRecord) or Err with kind VALIDATION_FAILED,
            UNAVAILABLE, CONFLICT or EXHAUSTED_ATTEMPTS

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        try:
            url = validate_target_url(target_url)
            validity = validate_validity(
                validity_minutes,
                default=self.default_validity,
                maximum=self.max_validity,
            )

            if custom_code is not None:
                code = validate_format(custom_code)
                await check_availability(code, self.store, self.reserved)
            else:
                code = await self.generator.generate_unique(self.store, self.max_attempts)

            now = self.clock()
            record = ShortcodeRecord(
                code=code,
                target_url=url,
                created_at=now,
                expires_at=now + timedelta(minutes=validity),
                active=True,
                click_count=0,
                created_by=created_by[:CREATED_BY_MAX_LENGTH],
            )
            record = await self.store.insert_unique(record)

        except StoreUnavailableError:
            raise
        except URLShortenerException as e:
            if e.kind == ErrorKind.EXHAUSTED_ATTEMPTS:
                logger.error(f"Shortcode generation exhausted: {e.detail}")
            else:
                logger.info(f"Shortcode creation rejected ({e.kind.value}): {e.detail}")
            return Err.from_exception(e)

        logger.info(
            f"Shortcode created: code={record.code} target={record.target_url} "
            f"expires_at={record.expires_at.isoformat()} by={created_by}"
        )
        return Ok(record)

    async def lookup_active(self, code: str) -> Result[ShortcodeRecord]:
        """
        Resolve a code to a record usable for redirect and stats.

        Returns:
            Ok(record) if active and not expired, otherwise Err with kind
            VALIDATION_FAILED (malformed code), NOT_FOUND or EXPIRED
        """
        try:
            normalized = validate_format(code)
        except ValidationFailedError as e:
            return Err.from_exception(e)

        now = self.clock()
        record = await self.store.get_active(normalized, now)
        if record is not None:
            return Ok(record)

        return await self.explain_unresolvable(normalized, now)

    async def explain_unresolvable(self, code: str, now: datetime) -> Err:
        """
        Tell Expired apart from NotFound for a code that did not resolve.

        Deactivated records are NotFound even when they are also past expiry.
        """
        record = await self.store.get_by_code(code)
        if record is not None and record.active and record.is_expired(now):
            return Err.from_exception(ShortcodeExpiredError(code))
        return Err.from_exception(ShortCodeNotFoundError(code))

    async def deactivate(self, code: str) -> Result[None]:
        """
        Soft-delete a shortcode.

        Existence is checked against every record ever issued, so deleting an
        already inactive code succeeds again without further effect.

        Returns:
            Ok(None) or Err(NOT_FOUND)
        """
        try:
            normalized = validate_format(code)
        except ValidationFailedError:
            return Err.from_exception(ShortCodeNotFoundError(code))

        if not await self.store.deactivate(normalized):
            return Err.from_exception(ShortCodeNotFoundError(normalized))

        logger.info(f"Shortcode deactivated: code={normalized}")
        return Ok(None)
