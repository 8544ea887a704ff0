"""SSRF validation of system-stored image URLs."""

import asyncio
import ipaddress
import logging
import socket
from typing import Awaitable, Callable, List, Union

import httpx

from ...domain.errors import FetchError, UnsafeURLError

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
Resolver = Callable[[str, int], Awaitable[List[str]]]

ALLOWED_SCHEMES = {"http", "https"}
CARRIER_GRADE_NAT = ipaddress.ip_network("100.64.0.0/10")
UNIQUE_LOCAL = ipaddress.ip_network("fc00::/7")
BROADCAST = ipaddress.ip_address("255.255.255.255")


def is_unsafe_address(address: IPAddress) -> bool:
    """Whether an address must never be fetched from the server side.

    IPv4-mapped IPv6 addresses are judged by their IPv4 form.
    """
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    if isinstance(address, ipaddress.IPv4Address):
        if address == BROADCAST or address in CARRIER_GRADE_NAT:
            return True
    elif address in UNIQUE_LOCAL:
        return True

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_multicast
        or address.is_reserved
        or address.is_unspecified
        or not address.is_global
    )


def validate_url(url: str) -> httpx.URL:
    """Check scheme, credentials and host of a URL before any network access.

    Raises:
        UnsafeURLError: If the URL is malformed or not allowed
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise UnsafeURLError(f"URL non valido: {e}") from e

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise UnsafeURLError(f"Schema URL non consentito: {parsed.scheme or 'assente'}")
    if parsed.userinfo:
        raise UnsafeURLError("URL con credenziali non consentito")
    if not parsed.host:
        raise UnsafeURLError("URL senza host")

    try:
        ipaddress.ip_address(parsed.host)
    except ValueError:
        return parsed
    raise UnsafeURLError(f"Indirizzo IP diretto non consentito: {parsed.host}")


async def resolve_host(host: str, port: int) -> List[str]:
    """Resolve a host name to every address returned by DNS."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


async def ensure_public_host(host: str, port: int, resolver: Resolver = resolve_host) -> List[IPAddress]:
    """Resolve a host and reject it if any resolved address is unsafe.

    Raises:
        FetchError: If resolution fails or returns nothing
        UnsafeURLError: If any resolved address is unsafe
    """
    try:
        resolved = await resolver(host, port)
    except (socket.gaierror, OSError) as e:
        raise FetchError(f"Risoluzione DNS fallita per {host}: {e}") from e

    if not resolved:
        raise FetchError(f"Nessun indirizzo per {host}")

    addresses = []
    for raw in resolved:
        # scoped IPv6 addresses carry a %zone suffix
        address = ipaddress.ip_address(raw.split("%", 1)[0])
        if is_unsafe_address(address):
            logger.warning(f"🚫 {host} resolves to unsafe address {address}")
            raise UnsafeURLError(f"L'host {host} risolve a un indirizzo non consentito")
        addresses.append(address)
    return addresses
