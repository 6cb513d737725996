"""Builds and runs the Burr application for one questioning round."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from burr.core import Application, ApplicationBuilder, default, when
from burr.lifecycle import PostRunStepHook, PreRunStepHook
from burr.tracking import LocalTrackingClient

from elicitor.elicitation.extractor import FactExtractor
from elicitor.workflow.burr_actions import (
    NEXT_STEP_CONTINUE,
    ask_question,
    decide_next_step,
    evaluate_completeness,
    extract_facts,
    summarize_requirements,
)

logger = logging.getLogger(__name__)

TERMINAL_STEPS = ["ask_question", "summarize_requirements"]

DEFAULT_PROJECT = "elicitor"


# ---------------------------------------------------------------------------
# Lifecycle Hooks
# ---------------------------------------------------------------------------


@dataclass
class ElicitationRoundProgressHook(PostRunStepHook, PreRunStepHook):
    """Logs each step of a round and forwards completions to an optional callback."""

    session_id: str = ""
    on_step_complete: Callable[[str, dict], None] | None = None

    def pre_run_step(self, *, action, **kwargs):
        """Called before each action runs."""
        logger.debug(f"[{self.session_id}] Starting: {action.name}")

    def post_run_step(self, *, action, state, result, **kwargs):
        """Called after each action completes."""
        if action.name == "decide_next_step":
            logger.info(
                f"[{self.session_id}] Completed: {action.name} "
                f"(next_step={state.get('next_step')}, category={state.get('next_category')})"
            )
        else:
            logger.info(f"[{self.session_id}] Completed: {action.name}")

        if self.on_step_complete:
            try:
                self.on_step_complete(action.name, dict(result or {}))
            except (TypeError, AttributeError, ValueError) as e:
                logger.error(f"on_step_complete callback failed: {e}")


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def default_round_state() -> dict[str, Any]:
    """Every state key the round actions read, with empty values."""
    return {
        "history": [],
        "latest_answer": "",
        "pending_question": None,
        "facts_record": None,
        "degraded": False,
        "warning": None,
        "score": None,
        "session_context": {},
        "stop_requested": False,
        "asked_question_ids": [],
        "next_step": "",
        "next_category": None,
        "reasoning": "",
        "summary_ready": False,
    }


def build_round_application(
    extractor: FactExtractor,
    state: dict[str, Any],
    session_id: str = "",
    app_id: str | None = None,
    enable_tracking: bool = False,
    project: str = DEFAULT_PROJECT,
    on_step_complete: Callable[[str, dict], None] | None = None,
) -> Application:
    """Create the Burr application for a single round.

    Args:
        extractor: FactExtractor bound into extract_facts
        state: Round state; missing keys take the defaults
        session_id: Used in log lines and the default app id
        app_id: Burr application id
        enable_tracking: Attach a LocalTrackingClient for the Burr UI
        project: Tracking project name
        on_step_complete: Optional callback(step_name, step_result)

    Returns:
        Burr Application ready to run
    """
    if app_id is None:
        app_id = f"{session_id or 'round'}-{uuid.uuid4().hex[:8]}"

    tracker = None
    if enable_tracking:
        try:
            tracker = LocalTrackingClient(project=project)
            logger.info(f"Burr tracking enabled: {project}")
        except (OSError, RuntimeError) as e:
            logger.warning(f"Could not enable tracking: {e}")

    initial_state = default_round_state()
    initial_state.update(state)

    builder = (
        ApplicationBuilder()
        .with_actions(
            extract_facts=extract_facts.bind(extractor=extractor),
            evaluate_completeness=evaluate_completeness,
            decide_next_step=decide_next_step,
            ask_question=ask_question,
            summarize_requirements=summarize_requirements,
        )
        .with_transitions(
            ("extract_facts", "evaluate_completeness"),
            ("evaluate_completeness", "decide_next_step"),
            ("decide_next_step", "ask_question", when(next_step=NEXT_STEP_CONTINUE)),
            ("decide_next_step", "summarize_requirements", default),
        )
        .with_state(**initial_state)
        .with_entrypoint("extract_facts")
        .with_hooks(ElicitationRoundProgressHook(session_id=session_id, on_step_complete=on_step_complete))
        .with_identifiers(app_id=app_id)
    )

    if tracker:
        builder = builder.with_tracker(tracker)

    return builder.build()


def run_round(
    extractor: FactExtractor,
    state: dict[str, Any],
    session_id: str = "",
    enable_tracking: bool = False,
) -> dict[str, Any]:
    """Run one round to its terminal step and return the resulting state.

    Returns:
        The final state as a plain dict, including the name of the terminal
        step under "halted_at".
    """
    app = build_round_application(
        extractor, state, session_id=session_id, enable_tracking=enable_tracking
    )
    final_action, _, final_state = app.run(halt_after=TERMINAL_STEPS)
    result = final_state.get_all()
    result["halted_at"] = final_action.name
    return result
