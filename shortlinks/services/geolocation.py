"""
Geolocation Service

Resolves a visitor IP to {country, region, city} for click analytics.

A lookup can never fail a redirect: private/invalid addresses, timeouts,
HTTP errors and unexpected payloads all resolve to the "Unknown" location.
"""

import asyncio
import ipaddress
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from shortlinks.db.models import IP_MAX_LENGTH, LOCATION_MAX_LENGTH, UNKNOWN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    """Geographic location attached to a click event."""

    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    ip: str = UNKNOWN

    @classmethod
    def unknown(cls, ip: Optional[str] = None) -> "GeoLocation":
        return cls(ip=canonical_ip(ip) or UNKNOWN)


def canonical_ip(value: Optional[str]) -> Optional[str]:
    """
    Parse a client-supplied address.

    Returns:
        The address in canonical form, or None if it is not an IP address
        (forged or malformed forwarding headers)
    """
    if not value:
        return None
    try:
        address = str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None
    if len(address) > IP_MAX_LENGTH:
        return None
    return address


def _location_field(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        return UNKNOWN
    return value[:LOCATION_MAX_LENGTH]


def is_private_ip(ip_address: str) -> bool:
    """True for addresses a public lookup cannot resolve (private, loopback, link-local, invalid)."""
    try:
        address = ipaddress.ip_address(ip_address)
    except ValueError:
        return True
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
        or address.is_multicast
    )


def client_ip_from_headers(headers: Mapping[str, str], peer_host: Optional[str] = None) -> str:
    """
    Extract client IP address from request headers.

    Handles proxies and load balancers by checking X-Forwarded-For, then
    X-Real-IP, then the socket peer.

    Args:
        headers: Request headers (case-insensitive mapping)
        peer_host: Address of the directly connected client

    Returns:
        IP address as string, IPv4-mapped IPv6 prefix removed
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        ip = forwarded_for.split(",")[0].strip()
    else:
        ip = headers.get("x-real-ip") or peer_host or "127.0.0.1"

    if ip.startswith("::ffff:"):
        ip = ip[len("::ffff:"):]
    return ip


class GeoLocationResolver:
    """
    Look up locations through an ip-api.com compatible HTTP endpoint.

    Usage:
        resolver = GeoLocationResolver("http://ip-api.com/json", timeout=5.0)
        location = await resolver.lookup("8.8.8.8")

    Args:
        service_url: Endpoint the IP is appended to
        timeout: Total seconds allowed per lookup
        enabled: When False every lookup returns the Unknown location
        client: Optional shared httpx.AsyncClient (tests inject a MockTransport)
    """

    def __init__(
        self,
        service_url: str,
        timeout: float = 5.0,
        enabled: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.service_url = service_url.rstrip("/")
        self.timeout = timeout
        self.enabled = enabled
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def lookup(self, ip_address: Optional[str]) -> GeoLocation:
        """
        Look up geographic location for an IP address.

        Args:
            ip_address: IP address to look up.

        Returns:
            GeoLocation with country/region/city, "Unknown" for anything unresolved.
        """
        if not ip_address:
            return GeoLocation.unknown()

        if not self.enabled or is_private_ip(ip_address):
            logger.debug(f"Skipping geolocation for {ip_address}")
            return GeoLocation.unknown(ip_address)

        # httpx timeouts apply per phase; wait_for bounds the whole lookup
        try:
            data = await asyncio.wait_for(self._fetch(ip_address), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"Geolocation lookup timed out for {ip_address}")
            return GeoLocation.unknown(ip_address)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get geolocation data for {ip_address}: {e}")
            return GeoLocation.unknown(ip_address)

        if not isinstance(data, dict) or data.get("status") != "success":
            logger.debug(f"Geolocation service returned no result for {ip_address}: {data}")
            return GeoLocation.unknown(ip_address)

        return GeoLocation(
            country=_location_field(data, "country"),
            region=_location_field(data, "regionName"),
            city=_location_field(data, "city"),
            ip=canonical_ip(ip_address) or UNKNOWN,
        )

    async def _fetch(self, ip_address: str) -> object:
        response = await self._get_client().get(
            f"{self.service_url}/{ip_address}",
            params={"fields": "status,country,regionName,city"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
