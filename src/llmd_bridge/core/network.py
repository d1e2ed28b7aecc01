"""Internal-address classification for outbound hosts.

Resolves a hostname and reports whether any of its addresses fall in a range
that must not be reachable from the bridge (private, loopback, link-local,
reserved, multicast, unspecified).

Resolution behaviour:
    - IP literals are classified directly, without touching the resolver.
    - Hostnames are resolved with ``socket.getaddrinfo``; every returned
      address is classified and a single internal address makes the host
      internal.
    - Names that do not resolve are reported as *not* internal. A hostname
      that cannot be resolved cannot be connected to either, so the request
      fails later at the transport layer.

Known limitation:
    DNS answers can change between validation and connection (DNS
    rebinding). The dispatcher re-runs the check before each request, which
    narrows but does not close that window.
"""

from __future__ import annotations

import ipaddress
import logging
import socket

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def _parse_ip(value: str) -> IPAddress | None:
    try:
        ip = ipaddress.ip_address(value.strip("[]"))
    except ValueError:
        return None
    # ::ffff:10.0.0.1 must classify like 10.0.0.1
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def is_internal_ip(ip: IPAddress) -> bool:
    """Return True if the address is in a non-public range."""
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def resolve_host(host: str) -> tuple[str, ...]:
    """Resolve a host to its addresses.

    Args:
        host: Hostname or IP literal (IPv6 may be bracketed).

    Returns:
        Unique addresses in resolver order. An IP literal resolves to itself.
        Empty tuple if the name does not resolve.
    """
    literal = _parse_ip(host)
    if literal is not None:
        return (str(literal),)

    try:
        infos = socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError, OSError) as exc:
        logger.debug("Could not resolve host %s: %s", host, exc)
        return ()

    addresses: list[str] = []
    for _, _, _, _, sockaddr in infos:
        address = str(sockaddr[0]).split("%", 1)[0]
        if address not in addresses:
            addresses.append(address)
    return tuple(addresses)


def is_internal_host(host: str) -> bool:
    """Classify a host as internal or public.

    Args:
        host: Hostname or IP literal.

    Returns:
        True if the host is an internal IP literal or resolves to at least
        one internal address. False for public hosts and for names that do
        not resolve.
    """
    for address in resolve_host(host):
        ip = _parse_ip(address)
        if ip is not None and is_internal_ip(ip):
            return True
    return False


__all__ = ["is_internal_host", "is_internal_ip", "resolve_host"]
