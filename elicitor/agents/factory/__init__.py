"""Config-driven agent construction."""

from elicitor.agents.factory.agent_factory import create_agent_by_name

__all__ = ["create_agent_by_name"]
