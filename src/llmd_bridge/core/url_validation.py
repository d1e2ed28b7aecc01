"""Base URL and endpoint validation with SSRF protection.

Validation rules for the orchestrator base URL:
    1. Surrounding whitespace and trailing slashes are stripped.
    2. The URL must be absolute (scheme and host present).
    3. The scheme must be http or https.
    4. Credentials embedded in the URL are rejected.
    5. Query strings, fragments and ";" parameters are rejected, since
       endpoints are appended to the URL as-is.
    6. Hosts in DEV_HOST_ALLOWLIST are accepted without classification.
    7. Any other host that classifies as internal is rejected.

Endpoint validation is an exact membership test against ENDPOINT_ALLOWLIST.
No prefix matching, wildcards or path normalization are applied, so callers
must pass canonical paths.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from llmd_bridge.core.network import is_internal_host, resolve_host
from llmd_bridge.domain.exceptions import InvalidConfigurationError
from llmd_bridge.domain.value_objects import ENDPOINT_ALLOWLIST

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})

DEV_HOST_ALLOWLIST: frozenset[str] = frozenset(
    {"localhost", "127.0.0.1", "host.docker.internal"}
)
"""Hosts accepted regardless of IP classification (local development)."""


@dataclass(slots=True, frozen=True)
class ValidatedUrl:
    """A base URL that passed validation.

    Attributes:
        url: Normalized URL without trailing slash.
        scheme: "http" or "https".
        host: Lowercased hostname.
        port: Explicit port, or the scheme default.
        resolved_addresses: Addresses the host resolved to at validation
            time. Empty for development hosts and unresolvable names.
    """

    url: str
    scheme: str
    host: str
    port: int
    resolved_addresses: tuple[str, ...] = ()

    @property
    def is_development_host(self) -> bool:
        return self.host in DEV_HOST_ALLOWLIST

    def join(self, endpoint: str) -> str:
        return f"{self.url}{endpoint}"


def validate_base_url(raw: str) -> ValidatedUrl:
    """Validate an orchestrator base URL.

    Args:
        raw: Untrusted URL string from configuration.

    Returns:
        ValidatedUrl for the normalized URL.

    Raises:
        InvalidConfigurationError: If the URL is malformed, uses another
            scheme, embeds credentials, carries a query, fragment or ";"
            parameters, or points at an internal address
            outside the development allowlist.
    """
    if not isinstance(raw, str):
        raise InvalidConfigurationError("Invalid URL format provided.")

    url = raw.strip().rstrip("/")
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise InvalidConfigurationError("Invalid URL format provided.") from exc

    if not parts.scheme or not parts.netloc or not parts.hostname:
        raise InvalidConfigurationError("Invalid URL format provided.")

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidConfigurationError("Only HTTP and HTTPS protocols are allowed.")

    if parts.username or parts.password:
        raise InvalidConfigurationError("Credentials in the URL are not allowed.")

    # join() appends the endpoint verbatim, so nothing may follow the path.
    if "?" in url or "#" in url or ";" in parts.path:
        raise InvalidConfigurationError("Invalid URL format provided.")

    host = parts.hostname.lower().rstrip(".")
    if port is None:
        port = 443 if scheme == "https" else 80

    if host in DEV_HOST_ALLOWLIST:
        return ValidatedUrl(url=url, scheme=scheme, host=host, port=port)

    if is_internal_host(host):
        logger.warning("Rejected orchestrator host %s: internal address", host)
        raise InvalidConfigurationError("Requests to internal IP addresses are not allowed.")

    return ValidatedUrl(
        url=url,
        scheme=scheme,
        host=host,
        port=port,
        resolved_addresses=resolve_host(host),
    )


def validate_endpoint(path: str) -> bool:
    """Return True only for an exact member of ENDPOINT_ALLOWLIST."""
    return path in ENDPOINT_ALLOWLIST


__all__ = [
    "DEV_HOST_ALLOWLIST",
    "ValidatedUrl",
    "validate_base_url",
    "validate_endpoint",
]
