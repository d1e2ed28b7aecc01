"""Domain entities for the llm-d bridge.

This module defines the request and result models exchanged with the
orchestrator client. Entities are frozen dataclasses that normalize and
validate their inputs in ``__post_init__`` so that invalid requests fail
before any network call is attempted.

Design Principles:
    - Immutability: All entities are frozen dataclasses (slots=True)
    - Validation: Business rules enforced in __post_init__ methods
    - No I/O: Entities contain no network operations
    - Wire mapping: ``to_payload``/``from_wire`` translate to and from the
      OpenAI-compatible JSON shapes

Key Entities:
    - ChatMessage: Normalized message with role fallback and content cap
    - ChatOptions / EmbeddingsOptions: Range-checked sampling parameters
    - ChatRequest / EmbeddingsRequest: Validated request entities
    - ModelDescriptor: Model metadata from the model listing
    - ChatResult / EmbeddingsResult: Derived response data plus raw JSON
"""

from __future__ import annotations

import html
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, Literal

from llmd_bridge.domain.exceptions import InvalidRequestError
from llmd_bridge.domain.value_objects import ModelId

VALID_ROLES = frozenset({"system", "user", "assistant", "function"})
"""Roles accepted by the orchestrator. Anything else becomes "user"."""

DEFAULT_ROLE = "user"

CONTENT_MAX_BYTES = 102_400
"""Maximum UTF-8 size of a single message or embeddings input (100 KB)."""

CHAT_OPTION_RANGES: dict[str, tuple[float, float]] = {
    "temperature": (0.0, 2.0),
    "max_tokens": (1, 4096),
    "top_p": (0.0, 1.0),
    "frequency_penalty": (-2.0, 2.0),
    "presence_penalty": (-2.0, 2.0),
}
"""Inclusive (min, max) bounds for numeric chat sampling parameters."""

EMBEDDING_DIMENSIONS_RANGE = (1, 3072)
ENCODING_FORMATS = frozenset({"float", "base64"})


def truncate_utf8(text: str, max_bytes: int = CONTENT_MAX_BYTES) -> str:
    """Cut text to at most ``max_bytes`` UTF-8 bytes on a character boundary.

    Characters UTF-8 cannot encode (lone surrogates) become "?".
    """
    encoded = text.encode("utf-8", errors="replace")
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def normalize_text(text: str) -> str:
    """Decode HTML entities and cap the size of user supplied text."""
    return truncate_utf8(html.unescape(text))


def _check_range(name: str, value: float | int, bounds: tuple[float, float]) -> None:
    low, high = bounds
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InvalidRequestError(f"Parameter '{name}' must be a number.")
    if not low <= value <= high:
        raise InvalidRequestError(f"Parameter '{name}' must be between {low} and {high}.")


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """A single chat message.

    The role is trimmed and lowercased; a value outside VALID_ROLES silently
    becomes "user" rather than failing, matching how the host platform hands
    over loosely typed message arrays. Content has HTML entities decoded and
    is capped at CONTENT_MAX_BYTES.

    Attributes:
        role: One of "system", "user", "assistant", "function".
        content: Message text, at most 100 KB.
        name: Optional participant name. Non-string or blank names are dropped.
    """

    role: str
    content: str
    name: str | None = None

    def __post_init__(self) -> None:
        role = (self.role or "").strip().lower() if isinstance(self.role, str) else ""
        if role not in VALID_ROLES:
            role = DEFAULT_ROLE
        object.__setattr__(self, "role", role)

        content = self.content if isinstance(self.content, str) else str(self.content or "")
        object.__setattr__(self, "content", normalize_text(content))

        name = self.name.strip() if isinstance(self.name, str) else None
        object.__setattr__(self, "name", name or None)

    @property
    def is_empty(self) -> bool:
        return not self.content.strip()

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True, frozen=True)
class ChatOptions:
    """Sampling parameters for chat completions.

    All fields are optional; unset fields are left out of the request so the
    orchestrator applies its own defaults.

    Attributes:
        temperature: Sampling temperature, [0, 2].
        max_tokens: Maximum tokens to generate, [1, 4096].
        top_p: Nucleus sampling, [0, 1].
        frequency_penalty: [-2, 2].
        presence_penalty: [-2, 2].
        stop: Stop sequences.

    Raises:
        InvalidRequestError: If any value is out of range or of the wrong type.
    """

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        for name, bounds in CHAT_OPTION_RANGES.items():
            value = getattr(self, name)
            if value is not None:
                _check_range(name, value, bounds)
        if self.max_tokens is not None and not isinstance(self.max_tokens, int):
            raise InvalidRequestError("Parameter 'max_tokens' must be an integer.")
        if self.stop is not None:
            if not isinstance(self.stop, list | tuple) or not all(isinstance(s, str) for s in self.stop):
                raise InvalidRequestError("Parameter 'stop' must be a list of strings.")
            object.__setattr__(self, "stop", tuple(self.stop))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> ChatOptions:
        """Build options from a loose mapping, ignoring unknown keys."""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known and v is not None})

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            payload[f.name] = list(value) if f.name == "stop" else value
        return payload


@dataclass(slots=True, frozen=True)
class EmbeddingsOptions:
    """Optional parameters for embeddings requests.

    Attributes:
        encoding_format: "float" or "base64".
        dimensions: Output vector size, [1, 3072].
        user: Free-text end-user identifier.
    """

    encoding_format: Literal["float", "base64"] | None = None
    dimensions: int | None = None
    user: str | None = None

    def __post_init__(self) -> None:
        if self.encoding_format is not None and self.encoding_format not in ENCODING_FORMATS:
            raise InvalidRequestError("Parameter 'encoding_format' must be 'float' or 'base64'.")
        if self.dimensions is not None:
            if not isinstance(self.dimensions, int):
                raise InvalidRequestError("Parameter 'dimensions' must be an integer.")
            _check_range("dimensions", self.dimensions, EMBEDDING_DIMENSIONS_RANGE)
        if self.user is not None and not isinstance(self.user, str):
            raise InvalidRequestError("Parameter 'user' must be a string.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> EmbeddingsOptions:
        """Build options from a loose mapping, ignoring unknown and blank keys."""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(
            **{k: v for k, v in values.items() if k in known and v not in (None, "")}
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(slots=True, frozen=True)
class ChatRequest:
    """Domain entity for chat completion requests.

    Empty and whitespace-only messages are dropped when the request is built.
    At least one message must remain.

    Attributes:
        model: Validated model identifier.
        messages: Non-empty tuple of normalized messages.
        options: Sampling parameters.

    Raises:
        InvalidRequestError: If no non-empty message is supplied or the model
            identifier is malformed.
    """

    model: ModelId
    messages: tuple[ChatMessage, ...]
    options: ChatOptions = field(default_factory=ChatOptions)

    def __post_init__(self) -> None:
        kept = tuple(m for m in self.messages if not m.is_empty)
        if not kept:
            raise InvalidRequestError("No valid messages provided for chat completion.")
        object.__setattr__(self, "messages", kept)

    @classmethod
    def create(
        cls,
        model: str,
        messages: Iterable[ChatMessage],
        options: ChatOptions | Mapping[str, Any] | None = None,
    ) -> ChatRequest:
        """Build a request from a plain model string.

        The model identifier is validated first so a malformed id is reported
        even when the messages are also invalid.
        """
        model_id = ModelId(model)
        if not isinstance(options, ChatOptions):
            options = ChatOptions.from_mapping(options)
        return cls(model=model_id, messages=tuple(messages), options=options)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model.value,
            "messages": [m.to_payload() for m in self.messages],
            "stream": False,
        }
        payload.update(self.options.to_payload())
        return payload


@dataclass(slots=True, frozen=True)
class EmbeddingsRequest:
    """Domain entity for embeddings requests.

    Attributes:
        model: Validated model identifier.
        input: Text to embed, HTML entities decoded and capped at 100 KB.
        options: Optional embeddings parameters.

    Raises:
        InvalidRequestError: If the input is empty after normalization.
    """

    model: ModelId
    input: str
    options: EmbeddingsOptions = field(default_factory=EmbeddingsOptions)

    def __post_init__(self) -> None:
        text = self.input if isinstance(self.input, str) else ""
        text = normalize_text(text)
        if not text.strip():
            raise InvalidRequestError("Empty input provided for embeddings.")
        object.__setattr__(self, "input", text)

    @classmethod
    def create(
        cls,
        model: str,
        text: str,
        options: EmbeddingsOptions | Mapping[str, Any] | None = None,
    ) -> EmbeddingsRequest:
        model_id = ModelId(model)
        if not isinstance(options, EmbeddingsOptions):
            options = EmbeddingsOptions.from_mapping(options)
        return cls(model=model_id, input=text, options=options)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.model.value, "input": self.input}
        payload.update(self.options.to_payload())
        return payload


@dataclass(slots=True, frozen=True)
class ModelDescriptor:
    """Metadata about a model served by the orchestrator.

    Attributes:
        id: Model identifier as reported by the orchestrator.
        kind: The ``object`` field, "model" when absent.
        description: ``metadata.description`` if present.
        max_tokens: ``metadata.max_tokens`` if present.
        dimensions: ``metadata.dimensions`` if present (embedding models).
        created_at: ``created`` epoch seconds, the listing time when absent.
        owner_label: ``owned_by``, "llm-d" when absent.
    """

    id: str
    kind: str = "model"
    description: str | None = None
    max_tokens: int | None = None
    dimensions: int | None = None
    created_at: int = 0
    owner_label: str = "llm-d"

    @classmethod
    def from_wire(cls, item: Mapping[str, Any], now: int | None = None) -> ModelDescriptor:
        """Map one element of the ``/v1/models`` ``data`` array.

        Raises:
            ValueError: If the element is not an object or has no string id.
        """
        if not isinstance(item, Mapping) or not isinstance(item.get("id"), str):
            raise ValueError("Model entry must be an object with a string 'id'")
        metadata = item.get("metadata")
        if not isinstance(metadata, Mapping):
            metadata = {}
        return cls(
            id=item["id"],
            kind=item.get("object") or "model",
            description=metadata.get("description"),
            max_tokens=metadata.get("max_tokens"),
            dimensions=metadata.get("dimensions"),
            created_at=item.get("created") or (now if now is not None else int(time.time())),
            owner_label=item.get("owned_by") or "llm-d",
        )


@dataclass(slots=True, frozen=True)
class ChatResult:
    """Result of a chat completion.

    Attributes:
        content: ``choices[0].message.content``, empty string when absent.
        finish_reason: ``choices[0].finish_reason``, "stop" when absent.
        usage: Token usage object, empty dict when absent.
        model: Model reported by the orchestrator, else the requested one.
        raw: Full decoded response body.
    """

    content: str
    finish_reason: str
    usage: dict[str, Any]
    model: str
    raw: dict[str, Any]

    @property
    def role(self) -> str:
        return "assistant"


@dataclass(slots=True, frozen=True)
class EmbeddingsResult:
    """Result of an embeddings request.

    Attributes:
        vector: Embedding of the first ``data`` element.
        index: ``data[0].index``, 0 when absent.
        usage: Token usage object, empty dict when absent.
        model: Model reported by the orchestrator, else the requested one.
        object: ``data[0].object``, "embedding" when absent.
        raw: Full decoded response body.
    """

    vector: Sequence[float] | str
    index: int
    usage: dict[str, Any]
    model: str
    object: str
    raw: dict[str, Any]
