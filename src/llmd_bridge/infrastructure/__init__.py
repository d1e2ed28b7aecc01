"""Infrastructure helpers for the llm-d bridge."""

from llmd_bridge.infrastructure.model_cache import ModelCatalog

__all__ = ["ModelCatalog"]
