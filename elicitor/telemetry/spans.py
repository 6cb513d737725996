"""Span helpers for elicitation rounds and confirmation actions.

Span Hierarchy:
    elicitation_round_span (per submitted answer)
    └── agent_span (created by Strands)
        └── llm_span (created by Strands)
    confirmation_span (per confirm/adjust/restart)

When no tracer provider is configured, opentelemetry hands out
non-recording spans, so these helpers are always safe to call.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Span, StatusCode

logger = logging.getLogger(__name__)

TRACER_NAME = "elicitor.engine"


def get_tracer() -> trace.Tracer:
    """Get the OpenTelemetry tracer for engine spans."""
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def _traced(name: str, attributes: dict[str, Any]) -> Generator[Span, None, None]:
    with get_tracer().start_as_current_span(name=name, attributes=attributes) as span:
        try:
            yield span
            span.set_status(StatusCode.OK)
        except Exception as e:
            record_error(span, e)
            raise


@contextmanager
def elicitation_round_span(
    session_id: str,
    round_number: int,
    **attributes: Any,
) -> Generator[Span, None, None]:
    """Create a span covering one questioning round.

    Args:
        session_id: Caller-supplied session id
        round_number: 1-based round index within the session
        **attributes: Additional span attributes

    Yields:
        The OpenTelemetry span
    """
    span_attributes = {"session.id": session_id, "elicitation.round": round_number}
    span_attributes.update(attributes)
    with _traced(f"elicitation:round-{round_number}", span_attributes) as span:
        yield span


@contextmanager
def confirmation_span(session_id: str, action: str, **attributes: Any) -> Generator[Span, None, None]:
    """Create a span for a confirmation action (confirm, adjust, restart)."""
    span_attributes = {"session.id": session_id, "confirmation.action": action}
    span_attributes.update(attributes)
    with _traced(f"confirmation:{action}", span_attributes) as span:
        yield span


def set_score_attributes(span: Span, score: Any) -> None:
    """Record a CompletenessScore on a span."""
    span.set_attribute("completeness.critical", score.critical)
    span.set_attribute("completeness.important", score.important)
    span.set_attribute("completeness.optional", score.optional)
    span.set_attribute("completeness.overall", score.overall)


def record_degraded(span: Span, reason: str) -> None:
    """Mark a round whose extraction fell back to the heuristic path."""
    span.set_attribute("extraction.degraded", True)
    span.add_event("extraction_degraded", attributes={"reason": reason[:500]})


def record_error(span: Span, error: Exception) -> None:
    """Record an error to a span with structured attributes."""
    error_message = str(error)
    span.set_attribute("error", True)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", error_message[:500])
    span.record_exception(error)
    span.set_status(StatusCode.ERROR, error_message[:100])
