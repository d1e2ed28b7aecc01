"""Outbound payload size guard.

The size is measured on the exact bytes the dispatcher sends, so a payload
accepted here can never grow past the limit on the wire.
"""

from __future__ import annotations

import json
from typing import Any

from llmd_bridge.domain.exceptions import InvalidRequestError, PayloadTooLargeError

MAX_PAYLOAD_BYTES = 1_048_576
"""Serialized payloads of this many bytes or more are rejected (1 MiB)."""


def encode_payload(payload: Any) -> bytes:
    """Encode ``payload`` as compact UTF-8 JSON, the wire format.

    Raises:
        InvalidRequestError: If the payload is not JSON-serializable or holds
            text UTF-8 cannot encode.
    """
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidRequestError("Payload contains text that is not valid UTF-8.") from exc
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError("Payload is not JSON-serializable.") from exc


def serialized_size(payload: Any) -> int:
    """Return the size in bytes of the wire encoding of ``payload``."""
    return len(encode_payload(payload))


def ensure_within_limit(payload: Any, limit: int = MAX_PAYLOAD_BYTES) -> Any:
    """Return ``payload`` unchanged if it serializes below ``limit`` bytes.

    Raises:
        PayloadTooLargeError: If the serialized size is ``>= limit``.
        InvalidRequestError: If the payload cannot be encoded.
    """
    size = serialized_size(payload)
    if size >= limit:
        raise PayloadTooLargeError(size=size, limit=limit)
    return payload


__all__ = ["MAX_PAYLOAD_BYTES", "encode_payload", "ensure_within_limit", "serialized_size"]
