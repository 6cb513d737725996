"""Burr actions for one questioning round.

A round runs extract_facts -> evaluate_completeness -> decide_next_step and
then halts on either ask_question or summarize_requirements.

The @action decorator specifies:
- reads: State keys this action needs to read
- writes: State keys this action will write to

State holds JSON-compatible values only (records and contexts as dicts).
The FactExtractor is bound with .bind() rather than stored in state.
"""

import logging
from typing import Any

from burr.core import State, action

from elicitor.config import MAX_QUESTIONS, QuestionCategory
from elicitor.elicitation import completeness, policy
from elicitor.elicitation.completeness import CompletenessScore, is_present
from elicitor.elicitation.extractor import FactExtractor
from elicitor.elicitation.models import ExtractionResult, FactsRecord, QuestioningTurn
from elicitor.elicitation.questions import get_next_question

logger = logging.getLogger(__name__)

NEXT_STEP_CONTINUE = "continue"
NEXT_STEP_PROCEED = "proceed"


# =============================================================================
# State conversion helpers
# =============================================================================


def record_from_state(state: State) -> FactsRecord | None:
    data = state.get("facts_record")
    return FactsRecord.model_validate(data) if data else None


def context_to_state(context: policy.SessionContext) -> dict[str, Any]:
    return {
        "rounds_taken": context.rounds_taken,
        "asked_categories": [c.value for c in context.asked_categories],
        "max_rounds": context.max_rounds,
        "degraded": context.degraded,
    }


def context_from_state(data: dict[str, Any]) -> policy.SessionContext:
    return policy.SessionContext(
        rounds_taken=data.get("rounds_taken", 0),
        asked_categories=tuple(QuestionCategory(c) for c in data.get("asked_categories", [])),
        max_rounds=data["max_rounds"],
        degraded=data.get("degraded", False),
    )


def score_from_state(state: State) -> CompletenessScore:
    data = state["score"]
    return CompletenessScore(
        critical=data["critical"], important=data["important"], optional=data["optional"]
    )


# =============================================================================
# Actions
# =============================================================================


@action(
    reads=["history", "latest_answer", "pending_question", "facts_record", "stop_requested"],
    writes=["facts_record", "history", "degraded", "warning", "latest_answer"],
)
def extract_facts(state: State, extractor: FactExtractor) -> State:
    """Merge the latest answer into the facts record.

    The answer is appended to the history after extraction, paired with the
    pending question when there is one.
    A stop request is recorded as a turn but is not read as evidence once a
    record exists.
    """
    history = list(state["history"])
    answer = state["latest_answer"]
    prior_record = record_from_state(state)
    if state.get("stop_requested") and prior_record is not None:
        result = ExtractionResult.structured(prior_record)
    else:
        result = extractor.extract(history, answer, prior_record)

    pending = state.get("pending_question")
    if pending:
        turn = QuestioningTurn(
            question=pending["text"],
            answer=answer,
            category=QuestionCategory(pending["category"]),
        )
        if not turn.is_empty:
            history.append(turn.to_dict())
    elif answer:
        history.append({"role": "user", "content": answer})

    warning = str(result.warning) if result.warning else None
    if result.degraded:
        logger.warning(f"Round used degraded extraction: {warning}")

    return state.update(
        facts_record=result.record.to_dict(),
        history=history,
        degraded=result.degraded,
        warning=warning,
        latest_answer="",
    )


@action(reads=["facts_record"], writes=["score"])
def evaluate_completeness(state: State) -> State:
    score = completeness.evaluate(record_from_state(state))
    return state.update(score=score.to_dict())


@action(
    reads=[
        "facts_record",
        "score",
        "session_context",
        "degraded",
        "stop_requested",
        "asked_question_ids",
    ],
    writes=["next_step", "next_category", "reasoning"],
)
def decide_next_step(state: State) -> State:
    """Ask the questioning policy what to do, honoring explicit stop requests."""
    record = record_from_state(state)
    score = score_from_state(state)
    context = context_from_state(state["session_context"]).with_degraded(state["degraded"])

    if state.get("stop_requested") and is_present(record.core_goal):
        logger.info("User asked to stop questioning; proceeding to confirmation")
        return state.update(
            next_step=NEXT_STEP_PROCEED,
            next_category=None,
            reasoning=f"User asked to stop; overall {score.overall:.2f}",
        )

    if len(state["asked_question_ids"]) >= MAX_QUESTIONS:
        return state.update(
            next_step=NEXT_STEP_PROCEED,
            next_category=None,
            reasoning=f"Question limit reached ({MAX_QUESTIONS}); overall {score.overall:.2f}",
        )

    decision = policy.decide(record, score, context)
    return state.update(
        next_step=NEXT_STEP_CONTINUE if decision.should_continue else NEXT_STEP_PROCEED,
        next_category=decision.next_category.value if decision.next_category else None,
        reasoning=decision.reasoning,
    )


@action(
    reads=["next_category", "facts_record", "asked_question_ids", "session_context", "degraded"],
    writes=["pending_question", "asked_question_ids", "session_context", "summary_ready"],
)
def ask_question(state: State) -> State:
    category = QuestionCategory(state["next_category"])
    record = record_from_state(state)
    question = get_next_question(category, record, state["asked_question_ids"])

    context = context_from_state(state["session_context"]).record_round(
        category, degraded=state["degraded"]
    )
    logger.info(f"Asking {question.id} (round {context.rounds_taken}/{context.max_rounds})")
    return state.update(
        pending_question=question.to_dict(),
        asked_question_ids=[*state["asked_question_ids"], question.id],
        session_context=context_to_state(context),
        summary_ready=False,
    )


@action(reads=["facts_record", "score"], writes=["pending_question", "summary_ready"])
def summarize_requirements(state: State) -> State:
    """Terminal step of a round: questioning is over, a summary can be generated."""
    logger.info(f"Questioning complete (overall={state['score']['overall']:.2f})")
    return state.update(pending_question=None, summary_ready=True)
