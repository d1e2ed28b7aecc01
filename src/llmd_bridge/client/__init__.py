"""Client interfaces for the llm-d orchestrator."""

from llmd_bridge.client.sync import OrchestratorClient
from llmd_bridge.client.transport import RequestDispatcher

__all__ = ["OrchestratorClient", "RequestDispatcher"]
