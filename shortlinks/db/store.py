"""
Shortcode Store

Durable keyed storage of shortcode records and their click history.

Every method runs in its own short transaction so concurrent requests never
share a session. The store is the only shared mutable resource of the
service, and the only component that decides how a mutation is applied:

- insert_unique relies on the unique index on `code`; a duplicate key is
  reported as ShortcodeConflictError, never as an overwrite
- append_click increments click_count with a single conditional
  UPDATE ... RETURNING, so concurrent clicks are serialized by the database
  and none are lost; the returned counter value becomes the event's sequence
  and older events are trimmed in the same transaction
- deactivation only ever flips `active` to False; rows are never deleted

Driver and connectivity failures are re-raised as StoreUnavailableError.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlinks.core.exceptions import ShortcodeConflictError, StoreUnavailableError
from shortlinks.db.models import ClickEvent, ShortcodeRecord

logger = logging.getLogger(__name__)


class ShortcodeStore:
    """
    Persistence operations for ShortcodeRecord and ClickEvent.

    Args:
        session_maker: async session factory bound to the service's engine
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_maker() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Store operation failed: {e}", exc_info=True)
            raise StoreUnavailableError(str(e), original_error=e) from e

    async def insert_unique(self, record: ShortcodeRecord) -> ShortcodeRecord:
        """
        Persist a new record, enforcing code uniqueness at the database level.

        Raises:
            ShortcodeConflictError: If any record (active or not) already uses the code
            StoreUnavailableError: If the database cannot be reached
        """
        async with self._session() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ShortcodeConflictError(record.code) from e
            return record

    async def exists(self, code: str) -> bool:
        """True if the code was ever issued, regardless of active/expiry state."""
        async with self._session() as session:
            statement = select(ShortcodeRecord.id).where(ShortcodeRecord.code == code).limit(1)
            result = await session.execute(statement)
            return result.scalar_one_or_none() is not None

    async def get_by_code(self, code: str) -> Optional[ShortcodeRecord]:
        async with self._session() as session:
            statement = select(ShortcodeRecord).where(ShortcodeRecord.code == code)
            result = await session.execute(statement)
            return result.scalars().first()

    async def get_active(self, code: str, now: datetime) -> Optional[ShortcodeRecord]:
        """Return the record only if it is active and now < expires_at."""
        async with self._session() as session:
            statement = select(ShortcodeRecord).where(
                ShortcodeRecord.code == code,
                ShortcodeRecord.active.is_(True),
                ShortcodeRecord.expires_at > now,
            )
            result = await session.execute(statement)
            return result.scalars().first()

    async def deactivate(self, code: str) -> bool:
        """
        Flip a record to inactive.

        Returns:
            True if a record with this code exists (already-inactive included),
            False if the code was never issued
        """
        async with self._session() as session:
            statement = (
                update(ShortcodeRecord)
                .where(ShortcodeRecord.code == code)
                .values(active=False)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(statement)
            await session.commit()
            return result.rowcount > 0

    async def append_click(
        self,
        code: str,
        event: ClickEvent,
        now: datetime,
        history_limit: int,
    ) -> Optional[int]:
        """
        Atomically record one click.

        In one transaction:
        1. click_count = click_count + 1 for the record, guarded by the
           resolvable predicate (active and now < expires_at)
        2. insert the event with sequence = the new click_count
        3. delete events with sequence <= click_count - history_limit

        Args:
            code: Normalized shortcode
            event: Click event to store (code and sequence are filled in here)
            now: Time used for the expiry guard
            history_limit: Number of most recent events to retain

        Returns:
            The new click_count, or None if the record was not resolvable and
            nothing was written
        """
        async with self._session() as session:
            increment = (
                update(ShortcodeRecord)
                .where(
                    ShortcodeRecord.code == code,
                    ShortcodeRecord.active.is_(True),
                    ShortcodeRecord.expires_at > now,
                )
                .values(click_count=ShortcodeRecord.click_count + 1)
                .returning(ShortcodeRecord.click_count)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(increment)
            sequence = result.scalar_one_or_none()
            if sequence is None:
                await session.rollback()
                return None

            event.code = code
            event.sequence = sequence
            session.add(event)

            trim = (
                delete(ClickEvent)
                .where(
                    ClickEvent.code == code,
                    ClickEvent.sequence <= sequence - history_limit,
                )
                .execution_options(synchronize_session=False)
            )
            await session.execute(trim)
            await session.commit()
            return sequence

    async def get_click_history(self, code: str) -> List[ClickEvent]:
        """Retained click events, oldest first (store serialization order)."""
        async with self._session() as session:
            statement = (
                select(ClickEvent)
                .where(ClickEvent.code == code)
                .order_by(ClickEvent.sequence)
            )
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def get_stats_snapshot(
        self,
        code: str,
        now: datetime,
    ) -> Optional[Tuple[ShortcodeRecord, List[ClickEvent]]]:
        """
        Load a resolvable record together with its click history.

        Both reads share one session. History is bounded by the click_count
        that was read, so a click committed in between is left out instead
        of producing more events than clicks.

        Returns:
            (record, history oldest first), or None if the code is not
            active or has expired
        """
        async with self._session() as session:
            statement = select(ShortcodeRecord).where(
                ShortcodeRecord.code == code,
                ShortcodeRecord.active.is_(True),
                ShortcodeRecord.expires_at > now,
            )
            record = (await session.execute(statement)).scalars().first()
            if record is None:
                return None

            history = await self._load_history(session, code, record.click_count)
            return record, history

    async def _load_history(
        self,
        session: AsyncSession,
        code: str,
        up_to_sequence: int,
    ) -> List[ClickEvent]:
        statement = (
            select(ClickEvent)
            .where(
                ClickEvent.code == code,
                ClickEvent.sequence <= up_to_sequence,
            )
            .order_by(ClickEvent.sequence)
        )
        result = await session.execute(statement)
        return list(result.scalars().all())

    async def deactivate_expired(self, now: datetime) -> List[str]:
        """
        Deactivate every active record whose expires_at < now.

        Returns:
            Codes that were flipped by this call
        """
        async with self._session() as session:
            statement = (
                update(ShortcodeRecord)
                .where(
                    ShortcodeRecord.active.is_(True),
                    ShortcodeRecord.expires_at < now,
                )
                .values(active=False)
                .returning(ShortcodeRecord.code)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(statement)
            codes = list(result.scalars().all())
            await session.commit()
            return codes

    async def ping(self) -> None:
        """Round-trip to the database (health checks)."""
        async with self._session() as session:
            await session.execute(select(1))
