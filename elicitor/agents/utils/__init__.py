"""Utilities for the extraction agent."""

from elicitor.agents.utils.model_provider import (
    LLMProvider,
    create_model,
    get_active_provider,
    get_model_id_for_tier,
)

__all__ = [
    "LLMProvider",
    "create_model",
    "get_active_provider",
    "get_model_id_for_tier",
]
