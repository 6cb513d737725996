"""
Agent factory for the text-understanding agents.

Agent configurations are centralized in elicitor/config.py; this module
turns an AgentConfig into a Strands Agent with the shared observability hooks.
"""

import logging
from dataclasses import replace
from typing import Any

from strands import Agent

from elicitor.agents.hooks import ElicitorAgentHooks
from elicitor.agents.utils.model_provider import create_model, get_model_id_for_tier
from elicitor.config import AGENT_CONFIGS, AgentConfig

logger = logging.getLogger(__name__)


def _create_agent_from_config(
    config: AgentConfig,
    model_id: str | None = None,
    trace_attributes: dict[str, Any] | None = None,
) -> Agent:
    """
    Create an agent from an AgentConfig object.

    Args:
        config: AgentConfig defining the agent's settings
        model_id: Optional model ID override
        trace_attributes: Optional attributes attached to Strands' agent/LLM spans

    Returns:
        Configured Agent instance
    """
    if model_id is None:
        model_id = get_model_id_for_tier(config.model_tier.value)

    model_kwargs = {
        "model_id": model_id,
        "tier": config.model_tier.value,
        "max_tokens": config.max_tokens,
        **config.timeout_config.to_dict(),
    }
    if config.streaming is not None:
        model_kwargs["streaming"] = config.streaming
    model = create_model(**model_kwargs)

    agent_kwargs = {
        "system_prompt": config.system_prompt,
        "name": config.name,
        "model": model,
        "tools": [],
        "hooks": [ElicitorAgentHooks()],
        # Replies are consumed programmatically; keep stdout quiet
        "callback_handler": None,
    }
    if trace_attributes:
        agent_kwargs["trace_attributes"] = trace_attributes

    agent = Agent(**agent_kwargs)

    logger.info(
        f"Created {config.name} with model_tier={config.model_tier.value}, "
        f"max_tokens={config.max_tokens}"
    )
    return agent


def create_agent_by_name(
    agent_name: str,
    model_id: str | None = None,
    max_tokens_override: int | None = None,
    trace_attributes: dict[str, Any] | None = None,
) -> Agent:
    """
    Create an agent by name using the centralized configuration.

    Args:
        agent_name: Key in AGENT_CONFIGS (e.g. 'fact_extractor')
        model_id: Optional model ID. If not provided, resolved from the tier.
        max_tokens_override: Optional max_tokens override.
        trace_attributes: Optional attributes for OpenTelemetry tracing
            (e.g. session.id, elicitation.round).

    Returns:
        Agent object for the specified agent

    Raises:
        ValueError: If agent_name is not recognized
    """
    config = AGENT_CONFIGS.get(agent_name)
    if config is None:
        raise ValueError(
            f"Unknown agent name: {agent_name}. Available agents: {', '.join(AGENT_CONFIGS.keys())}"
        )

    if max_tokens_override is not None:
        config = replace(config, max_tokens=max_tokens_override)

    final_trace_attributes = {"agent.name": agent_name}
    if trace_attributes:
        final_trace_attributes.update(trace_attributes)

    return _create_agent_from_config(config, model_id, trace_attributes=final_trace_attributes)
