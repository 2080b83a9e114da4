"""
Shared test fixtures.

Every test gets its own SQLite file database under pytest's tmp_path, a
fully wired service container, and (for API tests) an httpx client talking
to the ASGI app in-process. Geolocation goes through an httpx MockTransport,
so no test touches the network.
"""

import os

# Must be set before shortlinks.core.setting is imported
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SWEEP_INTERVAL_SECONDS", "0")

from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from shortlinks.core.container import build_container
from shortlinks.core.rate_limit import limiter
from shortlinks.core.setting import Settings
from shortlinks.db.models import ShortcodeRecord, utcnow
from shortlinks.db.session import create_tables
from shortlinks.services.geolocation import GeoLocationResolver

TEST_BASE_URL = "http://sho.rt"
TEST_SECRET = "test-secret-key"

GEO_FIXTURES = {
    "8.8.8.8": {
        "status": "success",
        "country": "United States",
        "regionName": "California",
        "city": "Mountain View",
    },
    "81.2.69.160": {
        "status": "success",
        "country": "United Kingdom",
        "regionName": "England",
        "city": "London",
    },
}


def geo_handler(request: httpx.Request) -> httpx.Response:
    ip = request.url.path.rsplit("/", 1)[-1]
    data = GEO_FIXTURES.get(ip, {"status": "fail", "message": "reserved range"})
    return httpx.Response(200, json=data)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortlinks-test.db'}",
        BASE_URL=TEST_BASE_URL,
        SECRET_KEY=TEST_SECRET,
        SWEEP_INTERVAL_SECONDS=0,
        RATE_LIMIT_ENABLED=False,
        GEOIP_SERVICE_URL="http://geo.test/json",
    )


@pytest_asyncio.fixture
async def geolocation():
    client = httpx.AsyncClient(transport=httpx.MockTransport(geo_handler))
    resolver = GeoLocationResolver("http://geo.test/json", timeout=1.0, client=client)
    yield resolver
    await client.aclose()


@pytest_asyncio.fixture
async def container(test_settings, geolocation):
    container = build_container(test_settings, geolocation=geolocation)
    await create_tables(container.engine)
    yield container
    await container.close()


@pytest.fixture
def store(container):
    return container.store


@pytest.fixture
def shortcode_service(container):
    return container.shortcodes


@pytest_asyncio.fixture
async def client(container):
    from shortlinks.main import app

    limiter.enabled = False
    app.state.container = container
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
    app.state.container = None


@pytest.fixture
def auth_headers(container):
    token = container.authenticator.create_access_token("tester@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def insert_record(store):
    """Insert a record directly, bypassing validation (expired/inactive fixtures)."""

    async def _insert(
        code: str,
        target_url: str = "https://example.com/page",
        expires_in: timedelta = timedelta(minutes=30),
        active: bool = True,
    ) -> ShortcodeRecord:
        now = utcnow()
        created_at = min(now, now + expires_in - timedelta(minutes=1))
        record = ShortcodeRecord(
            code=code,
            target_url=target_url,
            created_at=created_at,
            expires_at=now + expires_in,
            active=active,
            click_count=0,
        )
        return await store.insert_unique(record)

    return _insert
