"""Strands-backed text-understanding service for fact extraction."""

import logging
from collections.abc import Callable
from typing import Any

from elicitor.agents.factory.agent_factory import create_agent_by_name
from elicitor.agents.output_utils import extract_text_from_result
from elicitor.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

_ROLE_LABELS = {"user": "User", "assistant": "Interviewer", "system": "Context"}


def render_messages(messages: list[dict[str, str]]) -> str:
    """Render role-tagged messages as a single transcript prompt."""
    lines = []
    for message in messages:
        label = _ROLE_LABELS.get(message.get("role", ""), "User")
        lines.append(f"{label}: {message.get('content', '')}")
    return "\n\n".join(lines)


class StrandsTextService:
    """TextUnderstandingService backed by a Strands agent.

    A fresh agent is built per call. Strands agents keep their own message
    history, and sessions must not leak into one another.
    """

    def __init__(
        self,
        agent_name: str = "fact_extractor",
        trace_attributes: dict[str, Any] | None = None,
        agent_factory: Callable[..., Any] = create_agent_by_name,
    ):
        self.agent_name = agent_name
        self.trace_attributes = trace_attributes or {}
        self._agent_factory = agent_factory

    def complete(self, messages: list[dict[str, str]]) -> str:
        prompt = render_messages(messages)
        try:
            agent = self._agent_factory(self.agent_name, trace_attributes=self.trace_attributes)
            result = agent(prompt)
        except Exception as e:
            logger.error(f"Agent {self.agent_name} call failed: {e}", exc_info=True)
            raise UpstreamUnavailable(f"{self.agent_name} unavailable: {e}") from e

        text = extract_text_from_result(result)
        if not text:
            logger.warning(f"Agent {self.agent_name} returned empty output")
        return text
