"""Configuration for the llm-d bridge.

Two layers live here:

    - LlmdSettings: raw, untrusted values loaded with pydantic-settings from
      ``LLMD_*`` environment variables or a ``.env`` file. This is what a
      host platform's settings form would persist.
    - ClientConfiguration: the validated, immutable value an orchestrator
      client actually uses. It is only ever produced by
      ``build_configuration``, which runs URL validation, SSRF checks,
      credential resolution and the timeout range check.

Environment Variables:
    - LLMD_HOST: Orchestrator base URL
    - LLMD_API_KEY: Reference (name) of the API key in the secret store
    - LLMD_TIMEOUT: Request timeout in seconds, [1, 300]
    - LLMD_DEBUG: Log composed request URLs
    - LLMD_STREAMING_ENABLED: Streaming preference for the host platform
    - LLMD_MODELS_CACHE_TTL: Model listing cache lifetime in seconds
    - LLMD_LOGS_DIR: Directory for the JSONL request log

Usage:
    from llmd_bridge.core.config import build_configuration, get_settings

    settings = get_settings()
    config = build_configuration(settings.host, settings.api_key,
                                 settings.timeout, settings.debug, store)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from llmd_bridge.core.credentials import SecretStore, resolve_api_key
from llmd_bridge.core.url_validation import ValidatedUrl, validate_base_url
from llmd_bridge.domain.exceptions import InvalidConfigurationError
from llmd_bridge.domain.value_objects import Secret

logger = logging.getLogger(__name__)

TIMEOUT_MIN_SECONDS = 1
TIMEOUT_MAX_SECONDS = 300
DEFAULT_TIMEOUT_SECONDS = 30


class LlmdSettings(BaseSettings):
    """Raw bridge settings.

    Values are not trusted: the host is validated and the API key reference
    resolved only when a ClientConfiguration is built. Range constraints on
    numeric fields reject obviously broken environments at load time.

    Attributes:
        host: Orchestrator base URL. None until configured.
        api_key: Reference to the API key in the secret store.
        timeout: Request timeout in seconds. Range: [1, 300]. Default: 30.
        debug: Log composed URLs for each request. Default: False.
        streaming_enabled: Streaming preference, passed through to the host
            platform. The bridge itself only issues non-streaming calls.
        models_cache_ttl: Model listing cache lifetime in seconds.
        logs_dir: Directory for ``requests.jsonl``. None uses ``./logs``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LLMD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str | None = Field(default=None, description="Orchestrator base URL")
    api_key: str | None = Field(default=None, description="API key reference")
    timeout: int = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        ge=TIMEOUT_MIN_SECONDS,
        le=TIMEOUT_MAX_SECONDS,
        description="Request timeout (seconds)",
    )
    debug: bool = Field(default=False, description="Enable debug logging")
    streaming_enabled: bool = Field(default=True, description="Streaming preference")
    models_cache_ttl: int = Field(
        default=3600, ge=0, le=86400, description="Model cache TTL (seconds)"
    )
    logs_dir: Path | None = Field(default=None, description="Request log directory")

    @property
    def is_complete(self) -> bool:
        """True when both the host and the key reference are set."""
        return bool(self.host and self.host.strip() and self.api_key and self.api_key.strip())


@lru_cache(maxsize=1)
def get_settings() -> LlmdSettings:
    """Return the cached settings instance.

    Environment changes after the first call require ``get_settings.cache_clear()``.
    """
    return LlmdSettings()


@dataclass(slots=True, frozen=True)
class ClientConfiguration:
    """Validated, immutable client configuration.

    Never construct directly outside tests; use ``build_configuration`` so the
    invariants below hold.

    Invariants:
        - base_url passed ``validate_base_url`` (absolute, http/https, not
          internal unless a development host, no trailing slash)
        - api_key was resolved from the secret store and is >= 8 characters
        - timeout_seconds is in [1, 300]

    Attributes:
        base_url: Validated base URL.
        api_key: Resolved secret. Masked in ``repr``.
        timeout_seconds: Per-request timeout.
        debug: Log composed URLs.
        api_key_ref: Name the key was resolved from, safe to display.
    """

    base_url: ValidatedUrl
    api_key: Secret = field(repr=False)
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    debug: bool = False
    api_key_ref: str = ""

    @property
    def url(self) -> str:
        return self.base_url.url


def validate_timeout(timeout: int) -> int:
    """Return ``timeout`` if it is an integer in [1, 300].

    Raises:
        InvalidConfigurationError: Otherwise.
    """
    if isinstance(timeout, bool) or not isinstance(timeout, int):
        raise InvalidConfigurationError("Timeout must be a whole number of seconds.")
    if not TIMEOUT_MIN_SECONDS <= timeout <= TIMEOUT_MAX_SECONDS:
        raise InvalidConfigurationError(
            f"Timeout must be between {TIMEOUT_MIN_SECONDS} and {TIMEOUT_MAX_SECONDS} seconds."
        )
    return timeout


def build_configuration(
    base_url: str | None,
    api_key_ref: str | None,
    timeout: int = DEFAULT_TIMEOUT_SECONDS,
    debug: bool = False,
    *,
    store: SecretStore,
) -> ClientConfiguration:
    """Validate raw values and build a ClientConfiguration.

    Checks run in order: host, timeout, credential. The first failure is
    raised and no partial configuration is returned.

    Args:
        base_url: Untrusted orchestrator URL.
        api_key_ref: Name of the API key in ``store``.
        timeout: Request timeout in seconds.
        debug: Enable debug logging of composed URLs.
        store: Secret store used to resolve ``api_key_ref``.

    Returns:
        A new immutable ClientConfiguration.

    Raises:
        InvalidConfigurationError: If any value is invalid.
    """
    if not base_url or not base_url.strip():
        raise InvalidConfigurationError("LLM-d host URL is not configured.")
    validated = validate_base_url(base_url)
    timeout = validate_timeout(timeout)
    secret = resolve_api_key(api_key_ref or "", store)

    logger.debug(
        "Built client configuration for %s (timeout=%ss, key=%s)",
        validated.url,
        timeout,
        api_key_ref,
    )
    return ClientConfiguration(
        base_url=validated,
        api_key=secret,
        timeout_seconds=timeout,
        debug=bool(debug),
        api_key_ref=api_key_ref or "",
    )


def configuration_from_settings(
    settings: LlmdSettings, store: SecretStore
) -> ClientConfiguration:
    """Build a ClientConfiguration from loaded settings."""
    return build_configuration(
        settings.host,
        settings.api_key,
        settings.timeout,
        settings.debug,
        store=store,
    )


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "ClientConfiguration",
    "LlmdSettings",
    "build_configuration",
    "configuration_from_settings",
    "get_settings",
    "validate_timeout",
]
