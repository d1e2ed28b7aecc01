"""Core validation and configuration for the llm-d bridge."""

from llmd_bridge.core.config import (
    ClientConfiguration,
    LlmdSettings,
    build_configuration,
    configuration_from_settings,
    get_settings,
)
from llmd_bridge.core.credentials import (
    EnvironmentSecretStore,
    MappingSecretStore,
    SecretStore,
    resolve_api_key,
)
from llmd_bridge.core.network import is_internal_host, resolve_host
from llmd_bridge.core.payload import MAX_PAYLOAD_BYTES, ensure_within_limit
from llmd_bridge.core.url_validation import (
    DEV_HOST_ALLOWLIST,
    ValidatedUrl,
    validate_base_url,
    validate_endpoint,
)

__all__ = [
    "DEV_HOST_ALLOWLIST",
    "MAX_PAYLOAD_BYTES",
    "ClientConfiguration",
    "EnvironmentSecretStore",
    "LlmdSettings",
    "MappingSecretStore",
    "SecretStore",
    "ValidatedUrl",
    "build_configuration",
    "configuration_from_settings",
    "ensure_within_limit",
    "get_settings",
    "is_internal_host",
    "resolve_api_key",
    "resolve_host",
    "validate_base_url",
    "validate_endpoint",
]
