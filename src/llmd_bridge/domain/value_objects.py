"""Value objects for the llm-d bridge.

Immutable value objects with no identity. Each one validates its own
constraints in ``__post_init__`` so that an instance existing at all means the
value is safe to put on the wire.

Key Value Objects:
    - ModelId: Validated model identifier
    - Secret: Opaque credential that never renders its value
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from llmd_bridge.domain.exceptions import InvalidRequestError

MODEL_ID_MAX_LENGTH = 100
"""Maximum character length for model identifiers (inclusive)."""

MODEL_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
"""Characters allowed in a model identifier."""

ENDPOINT_ALLOWLIST: frozenset[str] = frozenset(
    {
        "/health",
        "/v1/models",
        "/v1/chat/completions",
        "/v1/completions",
        "/v1/embeddings",
    }
)
"""The only request paths the dispatcher will send to."""


@dataclass(slots=True, frozen=True)
class ModelId:
    """Value object representing an orchestrator model identifier.

    Model identifiers are interpolated into request bodies and logs, so they
    are restricted to ``[A-Za-z0-9._-]`` and at most 100 characters. Path
    separators are rejected, which rules out values like ``../etc/passwd``.

    Attributes:
        value: Model identifier string.

    Raises:
        InvalidRequestError: If the identifier is empty, too long, or contains
            characters outside the allowed set.
    """

    value: str

    def __post_init__(self) -> None:
        if (
            not isinstance(self.value, str)
            or not self.value
            or len(self.value) > MODEL_ID_MAX_LENGTH
            or not MODEL_ID_PATTERN.fullmatch(self.value)
        ):
            raise InvalidRequestError("Invalid model ID provided.")

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class Secret:
    """Opaque credential value.

    The value is excluded from ``repr`` and ``str`` so that a configuration
    object can be logged or printed without leaking the key. Use
    ``reveal()`` at the single point where the header is attached.
    """

    _value: str = field(repr=False)

    def reveal(self) -> str:
        """Return the raw secret value."""
        return self._value

    def __str__(self) -> str:
        return "********"

    def __bool__(self) -> bool:
        return bool(self._value)
