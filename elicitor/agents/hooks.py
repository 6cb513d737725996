"""Agent lifecycle hooks for observability.

Injected into every agent built by agent_factory.py. Purely observational:
timing, logging, and OTEL span annotation.
"""

import logging
import time

from opentelemetry import trace
from strands.hooks import (
    AfterInvocationEvent,
    BeforeInvocationEvent,
    HookProvider,
    HookRegistry,
)

logger = logging.getLogger(__name__)


class ElicitorAgentHooks(HookProvider):
    """Records invocation timing and tags the current span."""

    def __init__(self):
        self._start_time: float | None = None
        self.execution_time: float = 0.0

    def register_hooks(self, registry: HookRegistry, **kwargs) -> None:
        registry.add_callback(BeforeInvocationEvent, self._on_before_invocation)
        registry.add_callback(AfterInvocationEvent, self._on_after_invocation)

    def _on_before_invocation(self, event: BeforeInvocationEvent) -> None:
        self._start_time = time.time()
        agent_name = getattr(event.agent, "name", "unknown")
        logger.info(f"Agent {agent_name} invocation started")

    def _on_after_invocation(self, event: AfterInvocationEvent) -> None:
        self.execution_time = time.time() - (self._start_time or time.time())
        agent_name = getattr(event.agent, "name", "unknown")

        result = getattr(event, "result", None)
        if result is None:
            logger.warning(
                f"Agent {agent_name} invocation completed in {self.execution_time:.2f}s "
                f"with no result"
            )
            return

        stop_reason = getattr(result, "stop_reason", "unknown")
        logger.info(
            f"Agent {agent_name} invocation completed in {self.execution_time:.2f}s "
            f"(stop_reason={stop_reason})"
        )

        span = trace.get_current_span()
        span.set_attribute("agent.name", agent_name)
        span.set_attribute("agent.execution_time_seconds", self.execution_time)
        span.set_attribute("agent.stop_reason", str(stop_reason))
