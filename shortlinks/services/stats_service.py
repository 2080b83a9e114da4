"""
Statistics Service

This service handles retrieving statistics for shortcodes.

Stats are only served for resolvable codes: the same NotFound/Expired rules
as redirects apply, so an expired link stops exposing its analytics too.
"""

from typing import Any, Dict

from shortlinks.core.exceptions import ValidationFailedError
from shortlinks.core.result import Err, Ok, Result
from shortlinks.core.validators import validate_format
from shortlinks.db.models import ClickEvent
from shortlinks.db.store import ShortcodeStore
from shortlinks.services.shortcode_service import ShortcodeService


def serialize_click_event(event: ClickEvent) -> Dict[str, Any]:
    return {
        "timestamp": event.timestamp,
        "referrer": event.referrer,
        "geo_location": {
            "country": event.country,
            "region": event.region,
            "city": event.city,
            "ip": event.ip,
        },
        "user_agent": event.user_agent,
    }


class StatsService:
    """
    Service for retrieving shortcode statistics.

    Reads the record and its retained click history in one store call and
    uses the lifecycle service to tell Expired from NotFound.
    """

    def __init__(self, shortcode_service: ShortcodeService, store: ShortcodeStore):
        self.shortcode_service = shortcode_service
        self.store = store

    async def get_stats(self, code: str) -> Result[Dict[str, Any]]:
        """
        Get statistics for a shortcode.

        Returns:
            Ok(dict) with:
            - code, short_link, target_url
            - created_at, expires_at
            - click_count: Total number of recorded redirects
            - click_history: At most the last CLICK_HISTORY_LIMIT events, oldest first

            or Err with kind VALIDATION_FAILED, NOT_FOUND or EXPIRED, decided
            as in ShortcodeService.lookup_active.

        Note:
        - click_count keeps counting after old events have been trimmed, so
          it can exceed len(click_history), never the other way round: the
          record and its history come from a single store snapshot
        """
        try:
            normalized = validate_format(code)
        except ValidationFailedError as e:
            return Err.from_exception(e)

        now = self.shortcode_service.clock()
        snapshot = await self.store.get_stats_snapshot(normalized, now)
        if snapshot is None:
            return await self.shortcode_service.explain_unresolvable(normalized, now)

        record, history = snapshot

        return Ok({
            "code": record.code,
            "short_link": self.shortcode_service.short_link(record.code),
            "target_url": record.target_url,
            "created_at": record.created_at,
            "expires_at": record.expires_at,
            "click_count": record.click_count,
            "click_history": [serialize_click_event(event) for event in history],
        })
