"""Application layer: the provider facade used by the host platform."""

from llmd_bridge.application.provider import LlmdProvider, messages_from_input

__all__ = ["LlmdProvider", "messages_from_input"]
