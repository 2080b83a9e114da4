"""
Background Task Helpers

Long-running tasks started with the application. Each pass creates its own
database sessions through the store, and a failing pass is logged without
stopping the loop.
"""

import asyncio
import logging
from typing import Optional

from shortlinks.services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


async def sweep_expired_periodically(sweeper: ExpirySweeper, interval_seconds: float) -> None:
    """
    Run the expiry sweep every `interval_seconds` until cancelled.

    Args:
        sweeper: The sweeper to run
        interval_seconds: Pause between passes
    """
    while True:
        try:
            await sweeper.sweep()
        except Exception as e:
            logger.error(f"Expiry sweep failed: {str(e)}", exc_info=True)
        await asyncio.sleep(interval_seconds)


def start_expiry_sweeper(sweeper: ExpirySweeper, interval_seconds: float) -> Optional[asyncio.Task]:
    """Schedule the periodic sweep; an interval <= 0 disables it."""
    if interval_seconds <= 0:
        logger.info("Periodic expiry sweep disabled")
        return None
    logger.info(f"Starting periodic expiry sweep every {interval_seconds}s")
    return asyncio.create_task(sweep_expired_periodically(sweeper, interval_seconds))


async def stop_background_task(task: Optional[asyncio.Task]) -> None:
    """Cancel a task started by this module and wait for it to finish."""
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
