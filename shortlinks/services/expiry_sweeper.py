"""
Expiry Sweeper

Batch job that deactivates records whose validity has elapsed.

Redirects and stats already refuse expired codes on their own, so the sweep
is housekeeping: it makes `active` reflect reality for reporting and keeps
the active index small. Running it repeatedly or concurrently is harmless
because each record is flipped by a single conditional UPDATE.
"""

import logging
from datetime import datetime
from typing import Callable

from shortlinks.db.models import utcnow
from shortlinks.db.store import ShortcodeStore

logger = logging.getLogger(__name__)


class ExpirySweeper:

    def __init__(self, store: ShortcodeStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def sweep(self) -> int:
        """
        Deactivate every active record with expires_at < now.

        Returns:
            Number of records deactivated by this pass
        """
        codes = await self.store.deactivate_expired(self.clock())
        if codes:
            logger.info(f"Cleaned up {len(codes)} expired shortcodes")
            logger.debug(f"Deactivated shortcodes: {', '.join(codes)}")
        return len(codes)
