"""
Tests for the shortcode lifecycle: create, lookup_active, deactivate.

These run against a real SQLite database so uniqueness and the
active/expiry predicates are enforced by the store, not by mocks.
"""

import asyncio
from datetime import timedelta

import pytest

from shortlinks.core.exceptions import ErrorKind
from shortlinks.core.result import Err, Ok
from shortlinks.core.validators import SHORTCODE_PATTERN
from shortlinks.db.models import CREATED_BY_MAX_LENGTH


class TestCreate:
    """Test shortcode creation."""

    @pytest.mark.asyncio
    async def test_create_with_generated_code(self, shortcode_service):
        """Test that a generated code is well-formed and expires after the validity."""
        result = await shortcode_service.create("https://example.com/a", 60)

        assert isinstance(result, Ok)
        record = result.value
        assert len(record.code) == 8
        assert SHORTCODE_PATTERN.match(record.code)
        assert record.target_url == "https://example.com/a"
        assert record.expires_at - record.created_at == timedelta(minutes=60)
        assert record.active is True
        assert record.click_count == 0
        assert shortcode_service.short_link(record.code).endswith(record.code)

    @pytest.mark.asyncio
    async def test_default_validity_is_30_minutes(self, shortcode_service):
        """Test that a missing validity gives a 30 minute lifetime."""
        result = await shortcode_service.create("https://example.com/")
        record = result.value
        assert record.expires_at - record.created_at == timedelta(minutes=30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("minutes", [1, 1440])
    async def test_validity_bounds(self, shortcode_service, minutes):
        """Test that both ends of the validity range are accepted as given."""
        record = (await shortcode_service.create("https://example.com/", minutes)).value
        assert record.expires_at - record.created_at == timedelta(minutes=minutes)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("minutes", [0, 1441])
    async def test_out_of_range_validity_fails(self, shortcode_service, minutes):
        """Test that an out-of-range validity is a validation failure."""
        result = await shortcode_service.create("https://example.com/", minutes)
        assert isinstance(result, Err)
        assert result.kind == ErrorKind.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_target_url_is_normalized(self, shortcode_service):
        """Test that the stored target URL is normalized."""
        record = (await shortcode_service.create("HTTPS://Example.com/docs/")).value
        assert record.target_url == "https://example.com/docs"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not-a-url", "ftp://example.com/x", "javascript:alert(1)"])
    async def test_invalid_url_fails_validation(self, shortcode_service, url):
        """Test that unsupported target URLs are rejected."""
        result = await shortcode_service.create(url)
        assert not result.ok
        assert result.kind == ErrorKind.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_custom_code_is_lowercased(self, shortcode_service):
        """Test that custom codes are stored lowercase."""
        result = await shortcode_service.create("https://example.com/", custom_code="My-Link")
        assert result.value.code == "my-link"

    @pytest.mark.asyncio
    async def test_created_by_is_recorded(self, shortcode_service, store):
        """Test that the caller's identity is stored on the record."""
        result = await shortcode_service.create(
            "https://example.com/", custom_code="owned", created_by="alice"
        )
        assert result.ok
        assert (await store.get_by_code("owned")).created_by == "alice"

    @pytest.mark.asyncio
    async def test_long_created_by_fits_column(self, shortcode_service, store):
        """Test that an oversized identity subject is cut to the column width."""
        subject = "s" * (CREATED_BY_MAX_LENGTH + 50)
        result = await shortcode_service.create(
            "https://example.com/", custom_code="long-owner", created_by=subject
        )

        assert result.ok
        stored = (await store.get_by_code("long-owner")).created_by
        assert stored == subject[:CREATED_BY_MAX_LENGTH]

    @pytest.mark.asyncio
    async def test_malformed_custom_code_fails_validation(self, shortcode_service):
        """Test that a custom code with bad characters is rejected."""
        result = await shortcode_service.create("https://example.com/", custom_code="a b")
        assert result.kind == ErrorKind.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_reserved_custom_code_is_unavailable(self, shortcode_service):
        """Test that reserved words cannot be claimed."""
        result = await shortcode_service.create("https://example.com/", custom_code="health")
        assert isinstance(result, Err)
        assert result.kind == ErrorKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_taken_custom_code_is_unavailable(self, shortcode_service):
        """Test that an issued code cannot be claimed again, in any case."""
        assert (await shortcode_service.create("https://example.com/1", custom_code="dup")).ok
        result = await shortcode_service.create("https://example.com/2", custom_code="DUP")
        assert result.kind == ErrorKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_deleted_code_is_never_reissued(self, shortcode_service):
        """Test that a deleted code stays reserved."""
        assert (await shortcode_service.create("https://example.com/1", custom_code="gone")).ok
        assert (await shortcode_service.deactivate("gone")).ok

        result = await shortcode_service.create("https://example.com/2", custom_code="gone")
        assert result.kind == ErrorKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_expired_code_is_never_reissued(self, shortcode_service, insert_record):
        """Test that an expired code stays reserved."""
        await insert_record("stale", expires_in=timedelta(seconds=-1))
        result = await shortcode_service.create("https://example.com/2", custom_code="stale")
        assert result.kind == ErrorKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_insert_race_loser_gets_conflict(self, shortcode_service, store, monkeypatch):
        """Test that with the availability check out of the way, the unique index decides."""

        async def never_exists(code):
            return False

        monkeypatch.setattr(store, "exists", never_exists)

        results = await asyncio.gather(
            shortcode_service.create("https://example.com/1", custom_code="race"),
            shortcode_service.create("https://example.com/2", custom_code="race"),
        )

        assert sum(1 for r in results if r.ok) == 1
        loser = next(r for r in results if not r.ok)
        assert loser.kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_concurrent_custom_creates_single_winner(self, shortcode_service, store):
        """Test that concurrent claims of one custom code produce exactly one record."""
        results = await asyncio.gather(*[
            shortcode_service.create(f"https://example.com/{i}", custom_code="hot")
            for i in range(5)
        ])

        assert sum(1 for r in results if r.ok) == 1
        assert all(r.kind in (ErrorKind.CONFLICT, ErrorKind.UNAVAILABLE) for r in results if not r.ok)
        winner = next(r for r in results if r.ok).value
        assert (await store.get_by_code("hot")).target_url == winner.target_url

    @pytest.mark.asyncio
    async def test_generator_exhaustion_is_reported(self, shortcode_service, store, monkeypatch):
        """Test that a saturated namespace surfaces as EXHAUSTED_ATTEMPTS."""
        async def always_exists(code):
            return True

        monkeypatch.setattr(store, "exists", always_exists)
        result = await shortcode_service.create("https://example.com/")
        assert result.kind == ErrorKind.EXHAUSTED_ATTEMPTS


class TestLookupActive:
    """Test resolution of codes to active records."""

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, shortcode_service):
        """Test that lookups normalize the code's case."""
        await shortcode_service.create("https://example.com/", custom_code="casey")
        result = await shortcode_service.lookup_active("CaSeY")
        assert result.ok
        assert result.value.code == "casey"

    @pytest.mark.asyncio
    async def test_unknown_code_is_not_found(self, shortcode_service):
        """Test that a never-issued code is NOT_FOUND."""
        result = await shortcode_service.lookup_active("nothere")
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_malformed_code_fails_validation(self, shortcode_service):
        """Test that a malformed code is a validation failure."""
        result = await shortcode_service.lookup_active("x")
        assert result.kind == ErrorKind.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_expired_code_is_expired(self, shortcode_service, insert_record):
        """Test that a code one second past expiry is EXPIRED."""
        await insert_record("expired1", expires_in=timedelta(seconds=-1))
        result = await shortcode_service.lookup_active("expired1")
        assert result.kind == ErrorKind.EXPIRED

    @pytest.mark.asyncio
    async def test_deactivated_code_is_not_found(self, shortcode_service, insert_record):
        """Test that a deleted code is NOT_FOUND."""
        await insert_record("off1")
        await shortcode_service.deactivate("off1")
        assert (await shortcode_service.lookup_active("off1")).kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_deactivated_and_expired_code_is_not_found(self, shortcode_service, insert_record):
        """Test that deletion wins over expiry."""
        await insert_record("off2", expires_in=timedelta(seconds=-1), active=False)
        assert (await shortcode_service.lookup_active("off2")).kind == ErrorKind.NOT_FOUND


class TestDeactivate:
    """Test soft deletion."""

    @pytest.mark.asyncio
    async def test_deactivate_is_idempotent(self, shortcode_service, store, insert_record):
        """Test that deleting twice succeeds both times."""
        await insert_record("twice")

        assert (await shortcode_service.deactivate("twice")).ok
        assert (await shortcode_service.deactivate("TWICE")).ok

        record = await store.get_by_code("twice")
        assert record.active is False

    @pytest.mark.asyncio
    async def test_deactivate_expired_record_succeeds(self, shortcode_service, insert_record):
        """Test that expired codes can still be deleted."""
        await insert_record("old", expires_in=timedelta(hours=-1))
        assert (await shortcode_service.deactivate("old")).ok

    @pytest.mark.asyncio
    async def test_deactivate_unknown_code_is_not_found(self, shortcode_service):
        """Test that deleting a never-issued code is NOT_FOUND."""
        assert (await shortcode_service.deactivate("missing")).kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_deactivate_malformed_code_is_not_found(self, shortcode_service):
        """Test that deleting a malformed code is NOT_FOUND."""
        assert (await shortcode_service.deactivate("!!")).kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_records_are_never_physically_deleted(self, shortcode_service, store, insert_record):
        """Test that a deleted record stays in the store."""
        await insert_record("kept")
        await shortcode_service.deactivate("kept")
        assert await store.exists("kept")
