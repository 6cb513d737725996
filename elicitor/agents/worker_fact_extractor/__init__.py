"""Fact extractor agent wiring."""

from elicitor.agents.worker_fact_extractor.strands_service import (
    StrandsTextService,
    render_messages,
)

__all__ = ["StrandsTextService", "render_messages"]
