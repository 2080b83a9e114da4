"""
Tests for IP geolocation and client IP extraction.

The HTTP backend is replaced with httpx.MockTransport handlers.
"""

import asyncio

import httpx
import pytest

from shortlinks.db.models import LOCATION_MAX_LENGTH, UNKNOWN
from shortlinks.services.geolocation import (
    GeoLocation,
    GeoLocationResolver,
    canonical_ip,
    client_ip_from_headers,
    is_private_ip,
)


def make_resolver(handler, timeout=1.0, enabled=True):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeoLocationResolver("http://geo.test/json", timeout=timeout, enabled=enabled, client=client)


class TestLookup:
    """Test location lookups against the HTTP backend."""

    @pytest.mark.asyncio
    async def test_successful_lookup(self, geolocation):
        """Test that a success payload maps to country, region and city."""
        location = await geolocation.lookup("81.2.69.160")
        assert location == GeoLocation(
            country="United Kingdom", region="England", city="London", ip="81.2.69.160"
        )

    @pytest.mark.asyncio
    async def test_requested_url_contains_ip(self):
        """Test that the IP is appended to the service URL and missing fields are Unknown."""
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"status": "success", "country": "Japan"})

        resolver = make_resolver(handler)
        location = await resolver.lookup("1.1.1.1")
        await resolver._client.aclose()

        assert seen[0].path == "/json/1.1.1.1"
        assert location.country == "Japan"
        assert location.region == UNKNOWN
        assert location.city == UNKNOWN

    @pytest.mark.asyncio
    async def test_oversized_fields_are_truncated(self):
        """Test that location names longer than their columns are cut."""
        def handler(request):
            return httpx.Response(200, json={
                "status": "success",
                "country": "C" * (LOCATION_MAX_LENGTH * 3),
                "regionName": 42,
                "city": "Springfield",
            })

        resolver = make_resolver(handler)
        location = await resolver.lookup("1.1.1.1")
        await resolver._client.aclose()

        assert location.country == "C" * LOCATION_MAX_LENGTH
        assert location.region == UNKNOWN
        assert location.city == "Springfield"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.0.0.8", "192.168.0.1", "::1", "not-an-ip"])
    async def test_private_or_invalid_ip_skips_network(self, ip):
        """Test that unroutable addresses never reach the backend."""
        def handler(request):
            raise AssertionError("no request expected")

        resolver = make_resolver(handler)
        location = await resolver.lookup(ip)
        await resolver._client.aclose()

        assert location == GeoLocation.unknown(ip)

    @pytest.mark.asyncio
    async def test_garbage_ip_is_recorded_as_unknown(self, geolocation):
        """Test that a forged forwarding header does not survive as the IP."""
        location = await geolocation.lookup("x" * 60)
        assert location == GeoLocation()
        assert location.ip == UNKNOWN

    @pytest.mark.asyncio
    async def test_missing_ip_is_unknown(self, geolocation):
        """Test that a missing IP gives the all-Unknown location."""
        assert await geolocation.lookup(None) == GeoLocation()

    @pytest.mark.asyncio
    async def test_disabled_resolver_skips_network(self):
        """Test that a disabled resolver answers Unknown without a request."""
        def handler(request):
            raise AssertionError("no request expected")

        resolver = make_resolver(handler, enabled=False)
        location = await resolver.lookup("8.8.8.8")
        await resolver._client.aclose()

        assert location.country == UNKNOWN

    @pytest.mark.asyncio
    async def test_failed_status_is_unknown(self, geolocation):
        """Test that a fail status from the backend gives Unknown."""
        location = await geolocation.lookup("9.9.9.9")
        assert location == GeoLocation.unknown("9.9.9.9")

    @pytest.mark.asyncio
    async def test_server_error_is_unknown(self):
        """Test that an HTTP 500 gives Unknown."""
        resolver = make_resolver(lambda request: httpx.Response(500))
        location = await resolver.lookup("8.8.8.8")
        await resolver._client.aclose()
        assert location == GeoLocation.unknown("8.8.8.8")

    @pytest.mark.asyncio
    async def test_invalid_json_is_unknown(self):
        """Test that a non-JSON body gives Unknown."""
        resolver = make_resolver(lambda request: httpx.Response(200, text="<html>oops</html>"))
        location = await resolver.lookup("8.8.8.8")
        await resolver._client.aclose()
        assert location.country == UNKNOWN

    @pytest.mark.asyncio
    async def test_non_object_payload_is_unknown(self):
        """Test that a JSON payload other than an object gives Unknown."""
        resolver = make_resolver(lambda request: httpx.Response(200, json=["success"]))
        location = await resolver.lookup("8.8.8.8")
        await resolver._client.aclose()
        assert location.country == UNKNOWN

    @pytest.mark.asyncio
    async def test_transport_timeout_is_unknown(self):
        """Test that an httpx timeout gives Unknown."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        resolver = make_resolver(handler)
        location = await resolver.lookup("8.8.8.8")
        await resolver._client.aclose()
        assert location == GeoLocation.unknown("8.8.8.8")

    @pytest.mark.asyncio
    async def test_connection_error_is_unknown(self):
        """Test that a refused connection gives Unknown."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        resolver = make_resolver(handler)
        location = await resolver.lookup("8.8.8.8")
        await resolver._client.aclose()
        assert location.country == UNKNOWN

    @pytest.mark.asyncio
    async def test_slow_backend_is_cut_off(self):
        """Test that the whole lookup is bounded by the timeout."""
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"status": "success", "country": "Late"})

        resolver = make_resolver(handler, timeout=0.05)
        location = await asyncio.wait_for(resolver.lookup("8.8.8.8"), timeout=2)
        await resolver._client.aclose()
        assert location == GeoLocation.unknown("8.8.8.8")

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self, geolocation):
        """Test that close() only closes clients the resolver created."""
        client = geolocation._client
        await geolocation.close()
        assert not client.is_closed
        await client.aclose()


class TestCanonicalIP:
    """Test parsing of client-supplied addresses."""

    def test_valid_addresses_are_canonicalized(self):
        """Test that IPv4 and IPv6 addresses come back in canonical form."""
        assert canonical_ip("8.8.8.8") == "8.8.8.8"
        assert canonical_ip(" 203.0.113.7 ") == "203.0.113.7"
        assert canonical_ip("2001:DB8:0:0:0:0:0:1") == "2001:db8::1"

    @pytest.mark.parametrize("value", [None, "", "not-an-ip", "999.1.1.1", "x" * 60])
    def test_invalid_addresses_are_rejected(self, value):
        """Test that anything that is not an IP address gives None."""
        assert canonical_ip(value) is None

    def test_unknown_location_drops_garbage_ip(self):
        """Test that the Unknown location never carries an unparseable IP."""
        assert GeoLocation.unknown("garbage").ip == UNKNOWN
        assert GeoLocation.unknown("10.0.0.1").ip == "10.0.0.1"


class TestPrivateIP:
    """Test detection of addresses a public lookup cannot resolve."""

    def test_public_addresses(self):
        """Test that public IPv4 and IPv6 addresses are not private."""
        assert not is_private_ip("8.8.8.8")
        assert not is_private_ip("2001:4860:4860::8888")

    def test_private_addresses(self):
        """Test private, loopback, link-local and empty addresses."""
        for ip in ("127.0.0.1", "10.1.2.3", "172.16.0.1", "192.168.1.1", "169.254.1.1", "fe80::1", ""):
            assert is_private_ip(ip), ip


class TestClientIP:
    """Test client IP extraction from request headers."""

    def test_forwarded_for_takes_first_hop(self):
        """Test that the first X-Forwarded-For entry wins."""
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert client_ip_from_headers(headers, "10.0.0.2") == "203.0.113.7"

    def test_real_ip_header(self):
        """Test that X-Real-IP is used without X-Forwarded-For."""
        assert client_ip_from_headers({"x-real-ip": "203.0.113.9"}, "10.0.0.2") == "203.0.113.9"

    def test_peer_address_fallback(self):
        """Test the socket peer and localhost fallbacks."""
        assert client_ip_from_headers({}, "198.51.100.4") == "198.51.100.4"
        assert client_ip_from_headers({}, None) == "127.0.0.1"

    def test_ipv4_mapped_prefix_is_removed(self):
        """Test that the ::ffff: prefix is stripped."""
        assert client_ip_from_headers({}, "::ffff:198.51.100.4") == "198.51.100.4"
