"""
Redirect Service

This service handles URL redirection and click recording.

Design Decisions:
- The click is recorded before the target URL is handed back, so
  click_count is never behind the redirects that were actually served
- Recording is one atomic store call (increment + append + trim); two
  concurrent redirects of the same code are both counted
- The append is guarded by the same active/expiry predicate as the lookup;
  if the code was deleted or expired in between, nothing is recorded and
  the caller gets NotFound/Expired
- Geolocation never fails a redirect; any error degrades to "Unknown"
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from shortlinks.core.result import Ok, Result
from shortlinks.db.models import DIRECT_REFERRER, USER_AGENT_MAX_LENGTH, ClickEvent, utcnow
from shortlinks.db.store import ShortcodeStore
from shortlinks.services.geolocation import GeoLocation, GeoLocationResolver
from shortlinks.services.shortcode_service import ShortcodeService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickContext:
    """Request details captured for a redirect."""

    ip: Optional[str] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None


def build_click_event(context: ClickContext, location: GeoLocation, now: datetime) -> ClickEvent:
    """Pure construction of the event to append; the store assigns code and sequence."""
    return ClickEvent(
        timestamp=now,
        referrer=context.referrer or DIRECT_REFERRER,
        country=location.country,
        region=location.region,
        city=location.city,
        ip=location.ip,
        user_agent=context.user_agent[:USER_AGENT_MAX_LENGTH] if context.user_agent else None,
    )


class RedirectService:
    """
    Resolve shortcodes for redirection and record each click.

    Args:
        shortcode_service: Lifecycle service used for lookups
        store: Store providing the atomic click append
        geolocation: IP -> location resolver
        history_limit: Click events retained per code
        clock: Source of "now" (naive UTC)
    """

    def __init__(
        self,
        shortcode_service: ShortcodeService,
        store: ShortcodeStore,
        geolocation: GeoLocationResolver,
        history_limit: int = 100,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.shortcode_service = shortcode_service
        self.store = store
        self.geolocation = geolocation
        self.history_limit = history_limit
        self.clock = clock

    async def _locate(self, ip: Optional[str]) -> GeoLocation:
        try:
            return await self.geolocation.lookup(ip)
        except Exception as e:
            logger.warning(f"Geolocation failed for {ip}, using fallback: {e}", exc_info=True)
            return GeoLocation.unknown(ip)

    async def resolve_and_record(self, code: str, context: ClickContext) -> Result[str]:
        """
        Get the target URL for redirection and record the click.

        Args:
            code: Shortcode from the request path (any case)
            context: Visitor IP, referrer and user agent

        Returns:
            Ok(target_url), or Err with kind VALIDATION_FAILED, NOT_FOUND or
            EXPIRED (no click recorded)

        Raises:
            StoreUnavailableError: If the lookup or the click write fails
        """
        lookup = await self.shortcode_service.lookup_active(code)
        if not lookup.ok:
            return lookup

        record = lookup.value
        location = await self._locate(context.ip)

        now = self.clock()
        event = build_click_event(context, location, now)
        click_count = await self.store.append_click(record.code, event, now, self.history_limit)

        if click_count is None:
            logger.info(f"Shortcode {record.code} became unresolvable before the click was recorded")
            return await self.shortcode_service.explain_unresolvable(record.code, now)

        logger.debug(
            f"Redirect: code={record.code} clicks={click_count} "
            f"ip={location.ip} country={location.country}"
        )
        return Ok(record.target_url)
