"""
Database Models for the Shortcode Service

This module defines the SQLModel database schemas for:
- ShortcodeRecord: Maps a shortcode to its target URL, expiry and click counter
- ClickEvent: Bounded per-shortcode click history used for analytics

Design Decisions:
- Records are never physically deleted; `active` is flipped to False instead
- Indexes on expires_at/active back the redirect predicate and the sweeper
- click_count is denormalized on the record and incremented atomically
- ClickEvent.sequence is the click_count value assigned by that increment, so
  history order is the order in which the store serialized the appends
- Timestamps are stored as naive UTC
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    """Current time as naive UTC (the storage convention for every timestamp)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


UNKNOWN = "Unknown"
DIRECT_REFERRER = "Direct"

# Widths of the bounded columns filled from request data
CREATED_BY_MAX_LENGTH = 100
LOCATION_MAX_LENGTH = 100
IP_MAX_LENGTH = 45  # IPv6 max length
USER_AGENT_MAX_LENGTH = 500


class ShortcodeRecord(SQLModel, table=True):
    """
    Main table storing shortcode mappings.

    Fields:
    - code: Unique lowercase shortcode (3-20 chars)
    - target_url: Normalized absolute http/https URL
    - created_at: Creation time, immutable
    - expires_at: created_at + validity minutes
    - active: False once deleted or swept; never set back to True
    - click_count: Number of recorded redirects
    - created_by: Identity subject of the caller that created the code
    """
    __tablename__ = "shortcodes"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True),
        max_length=20
    )
    target_url: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False, index=True)
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=False), nullable=False, index=True)
    )
    active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True, index=True)
    )
    click_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_by: str = Field(
        default="system",
        sa_column=Column(String(CREATED_BY_MAX_LENGTH), nullable=False, default="system")
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class ClickEvent(SQLModel, table=True):
    """
    One recorded redirect.

    Rows are only written by ShortcodeStore.append_click, which also trims
    everything older than the configured history limit in the same
    transaction.
    """
    __tablename__ = "click_events"
    __table_args__ = (
        UniqueConstraint("code", "sequence", name="uq_click_events_code_sequence"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    sequence: int = Field(sa_column=Column(Integer, nullable=False))
    timestamp: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=False), nullable=False)
    )
    referrer: str = Field(
        default=DIRECT_REFERRER,
        sa_column=Column(Text, nullable=False, default=DIRECT_REFERRER)
    )
    country: str = Field(default=UNKNOWN, sa_column=Column(String(LOCATION_MAX_LENGTH), nullable=False))
    region: str = Field(default=UNKNOWN, sa_column=Column(String(LOCATION_MAX_LENGTH), nullable=False))
    city: str = Field(default=UNKNOWN, sa_column=Column(String(LOCATION_MAX_LENGTH), nullable=False))
    ip: str = Field(default=UNKNOWN, sa_column=Column(String(IP_MAX_LENGTH), nullable=False))
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(USER_AGENT_MAX_LENGTH), nullable=True)
    )
