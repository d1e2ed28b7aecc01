"""API key resolution from an external secret store.

The bridge never stores credentials itself. Configuration holds a *reference*
(a key name), and the secret is looked up through a ``SecretStore`` at the
moment a client configuration is built.

Shipped stores:
    - EnvironmentSecretStore: Reads environment variables
    - MappingSecretStore: In-memory mapping, for embedding hosts and tests
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Protocol

from llmd_bridge.domain.exceptions import InvalidConfigurationError
from llmd_bridge.domain.value_objects import Secret

logger = logging.getLogger(__name__)

API_KEY_MIN_LENGTH = 8


class SecretStore(Protocol):
    """Protocol for credential lookups by reference."""

    def get_secret(self, key_ref: str) -> str | None:
        """Return the secret value for ``key_ref``, or None if unknown."""
        ...


class EnvironmentSecretStore:
    """Secret store backed by environment variables.

    A reference ``llmd_key`` with prefix ``"SECRET_"`` is read from
    ``SECRET_LLMD_KEY``. Without a prefix the reference is used verbatim.
    """

    def __init__(self, prefix: str = "", environ: Mapping[str, str] | None = None) -> None:
        self._prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def get_secret(self, key_ref: str) -> str | None:
        name = f"{self._prefix}{key_ref}".upper() if self._prefix else key_ref
        return self._environ.get(name)


class MappingSecretStore:
    """Secret store backed by a plain mapping."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets = dict(secrets or {})

    def get_secret(self, key_ref: str) -> str | None:
        return self._secrets.get(key_ref)


def resolve_api_key(key_ref: str, store: SecretStore) -> Secret:
    """Look up and check an API key.

    Args:
        key_ref: Name of the key in the secret store.
        store: Secret store to query.

    Returns:
        The secret, wrapped so it never renders in logs.

    Raises:
        InvalidConfigurationError: If the reference is empty, the key does not
            exist, the value is empty, or the value is shorter than
            API_KEY_MIN_LENGTH characters.
    """
    if not key_ref or not key_ref.strip():
        raise InvalidConfigurationError("API key ID cannot be empty.")

    value = store.get_secret(key_ref)
    if value is None:
        logger.warning("API key %s not found in secret store", key_ref)
        raise InvalidConfigurationError("API key not found in key repository.")
    if not value:
        raise InvalidConfigurationError("API key value is empty.")
    if len(value) < API_KEY_MIN_LENGTH:
        raise InvalidConfigurationError("API key appears to be too short.")

    return Secret(value)


__all__ = [
    "API_KEY_MIN_LENGTH",
    "EnvironmentSecretStore",
    "MappingSecretStore",
    "SecretStore",
    "resolve_api_key",
]
