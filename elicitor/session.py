"""Session engine tying extraction, scoring, questioning and confirmation together.

Sessions are independent and keyed by a caller-supplied id. Each submitted
answer runs one Burr round (see elicitor.workflow); once questioning ends the
session hands over to its ConfirmationMachine.

Usage:
    engine = ElicitationEngine.from_env()
    first = engine.start_session("s1", "I want a browser plugin that saves articles")
    while first.should_continue:
        first = engine.submit_answer("s1", input(first.next_question.text))
    engine.confirm("s1")
    digest = engine.build_digest("s1")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from elicitor.config import MAX_ROUNDS
from elicitor.elicitation import completeness, digest, quality
from elicitor.elicitation.completeness import CompletenessScore
from elicitor.elicitation.confirmation import (
    Adjustment,
    AdjustmentOp,
    ConfirmationMachine,
    ConfirmationPhase,
    ConfirmationState,
)
from elicitor.elicitation.extractor import FactExtractor
from elicitor.elicitation.models import FactsRecord, QuestioningTurn
from elicitor.elicitation.policy import PolicyAction, SessionContext
from elicitor.elicitation.questions import AnswerIntent, Question, detect_intent
from elicitor.errors import InvalidAdjustment, InvalidInput, InvalidTransition, SessionNotFound
from elicitor.telemetry import (
    confirmation_span,
    elicitation_round_span,
    init_telemetry,
    record_degraded,
    set_score_attributes,
)
from elicitor.workflow import NEXT_STEP_CONTINUE, run_round
from elicitor.workflow.burr_actions import context_from_state, context_to_state

logger = logging.getLogger(__name__)


# =============================================================================
# Session data
# =============================================================================


@dataclass
class ElicitationSession:
    """Everything the engine keeps for one session."""

    session_id: str
    original_input: str
    max_rounds: int = MAX_ROUNDS
    round_state: dict[str, Any] = field(default_factory=dict)
    rounds_run: int = 0
    questioning_open: bool = True
    last_warning: str | None = None
    confirmation: ConfirmationMachine | None = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def record(self) -> FactsRecord | None:
        data = self.round_state.get("facts_record")
        return FactsRecord.model_validate(data) if data else None

    @property
    def context(self) -> SessionContext:
        data = self.round_state.get("session_context") or {"max_rounds": self.max_rounds}
        return context_from_state(data)

    @property
    def turns(self) -> list[QuestioningTurn]:
        """Question/answer exchanges so far, excluding the opening input."""
        return [
            QuestioningTurn.from_dict(entry)
            for entry in self.round_state.get("history", [])
            if "question" in entry
        ]

    @property
    def pending_question(self) -> Question | None:
        data = self.round_state.get("pending_question")
        return Question.from_dict(data) if data else None

    def reset(self, original_input: str = "") -> None:
        """Drop the record, turns and counters."""
        self.original_input = original_input
        self.round_state = {
            "session_context": context_to_state(SessionContext(max_rounds=self.max_rounds)),
        }
        self.rounds_run = 0
        self.questioning_open = True
        self.last_warning = None


@dataclass(frozen=True)
class RoundResult:
    """Outcome of one questioning round."""

    session_id: str
    round_number: int
    action: PolicyAction
    reasoning: str
    score: CompletenessScore
    next_question: Question | None = None
    degraded: bool = False
    warning: str | None = None
    confirmation: ConfirmationState | None = None

    @property
    def should_continue(self) -> bool:
        return self.action is PolicyAction.CONTINUE


# =============================================================================
# Engine
# =============================================================================


class ElicitationEngine:
    """In-memory multi-session elicitation engine.

    Args:
        extractor: FactExtractor shared by all sessions (it holds no session state)
        max_rounds: Questioning round cap per session
        enable_tracking: Attach a Burr LocalTrackingClient to every round
    """

    def __init__(
        self,
        extractor: FactExtractor,
        max_rounds: int = MAX_ROUNDS,
        enable_tracking: bool = False,
    ):
        self.extractor = extractor
        self.max_rounds = max_rounds
        self.enable_tracking = enable_tracking
        self._sessions: dict[str, ElicitationSession] = {}

    @classmethod
    def from_env(cls, enable_tracking: bool = False) -> "ElicitationEngine":
        """Build an engine backed by the configured LLM provider.

        Loads .env, initializes telemetry and wires a Strands-backed
        text-understanding service into the extractor.
        """
        load_dotenv()

        from elicitor.agents.worker_fact_extractor import StrandsTextService

        init_telemetry()
        return cls(FactExtractor(StrandsTextService()), enable_tracking=enable_tracking)

    # -------------------------------------------------------------------------
    # Session lookup
    # -------------------------------------------------------------------------

    def get_session(self, session_id: str) -> ElicitationSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(f"Unknown session '{session_id}'") from None

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def end_session(self, session_id: str) -> None:
        """Discard a session and everything it holds."""
        self.get_session(session_id)
        del self._sessions[session_id]
        logger.info(f"Session {session_id} discarded")

    # -------------------------------------------------------------------------
    # Questioning
    # -------------------------------------------------------------------------

    def start_session(self, session_id: str, initial_input: str) -> RoundResult:
        """Create a session from the user's opening description and run the first round.

        Raises:
            InvalidInput: If the id is empty or taken, or the input is blank.
        """
        if not session_id or not str(session_id).strip():
            raise InvalidInput("session_id must be a non-empty string")
        if session_id in self._sessions:
            raise InvalidInput(f"Session '{session_id}' already exists")
        initial_input = (initial_input or "").strip()
        if not initial_input:
            raise InvalidInput("initial_input must not be empty")

        session = ElicitationSession(
            session_id=session_id, original_input=initial_input, max_rounds=self.max_rounds
        )
        session.reset(initial_input)
        self._sessions[session_id] = session
        logger.info(f"Session {session_id} started ({len(initial_input)} chars)")
        return self._run_round(session, initial_input)

    def submit_answer(self, session_id: str, answer: str) -> RoundResult:
        """Feed one answer into the session and run a round.

        After a restart the answer is treated as a fresh opening description.

        Raises:
            SessionNotFound: If the session does not exist.
            InvalidTransition: If questioning has already ended.
            InvalidInput: If the answer is blank and there is nothing to extract from.
        """
        session = self.get_session(session_id)
        if not session.questioning_open:
            raise InvalidTransition(
                "Questioning has ended for this session",
                phase=self._phase_name(session),
                action="submit_answer",
            )

        answer = (answer or "").strip()
        if session.record is None:
            if not answer:
                raise InvalidInput("answer must not be empty")
            session.original_input = answer
            return self._run_round(session, answer)

        intent = detect_intent(answer)
        stop = intent.intent is AnswerIntent.STOP
        if stop:
            logger.info(f"Session {session_id}: stop requested ('{intent.matched}')")
        return self._run_round(session, answer, stop_requested=stop)

    def _run_round(self, session: ElicitationSession, answer: str, stop_requested: bool = False) -> RoundResult:
        round_number = session.rounds_run + 1
        state = dict(session.round_state)
        state.update(latest_answer=answer, stop_requested=stop_requested)

        with elicitation_round_span(session.session_id, round_number) as span:
            result_state = run_round(
                self.extractor,
                state,
                session_id=session.session_id,
                enable_tracking=self.enable_tracking,
            )
            score = CompletenessScore(
                critical=result_state["score"]["critical"],
                important=result_state["score"]["important"],
                optional=result_state["score"]["optional"],
            )
            set_score_attributes(span, score)
            if result_state["degraded"]:
                record_degraded(span, result_state["warning"] or "")
            span.set_attribute("elicitation.next_step", result_state["next_step"])

        session.round_state = {
            key: result_state[key]
            for key in ("history", "facts_record", "session_context", "asked_question_ids", "pending_question")
        }
        session.rounds_run = round_number
        session.last_warning = result_state["warning"]

        confirmation = None
        if result_state["next_step"] == NEXT_STEP_CONTINUE:
            action = PolicyAction.CONTINUE
        else:
            action = PolicyAction.PROCEED
            confirmation = self._begin_confirmation(session)

        return RoundResult(
            session_id=session.session_id,
            round_number=round_number,
            action=action,
            reasoning=result_state["reasoning"],
            score=score,
            next_question=session.pending_question,
            degraded=result_state["degraded"],
            warning=result_state["warning"],
            confirmation=confirmation,
        )

    def get_completeness(self, session_id: str) -> CompletenessScore:
        """Score the session's current record.

        Falls back to the configured fallback scores if evaluation fails.
        """
        session = self.get_session(session_id)
        record = session.record
        if record is None:
            return CompletenessScore.fallback()
        try:
            return completeness.evaluate(record)
        except Exception as e:
            logger.error(f"Completeness evaluation failed for {session_id}: {e}", exc_info=True)
            return CompletenessScore.fallback()

    def get_next_question(self, session_id: str) -> Question | None:
        """The question awaiting an answer, or None once questioning has ended."""
        return self.get_session(session_id).pending_question

    # -------------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------------

    def _begin_confirmation(self, session: ElicitationSession) -> ConfirmationState:
        session.questioning_open = False
        session.round_state["pending_question"] = None
        if session.confirmation is None:
            session.confirmation = ConfirmationMachine()
        return session.confirmation.generate_summary(session.record)

    def _current_state(self, session: ElicitationSession, action: str) -> ConfirmationState:
        current = session.confirmation.current if session.confirmation else None
        if current is None:
            raise InvalidTransition("No summary has been generated yet", action=action)
        return current

    @staticmethod
    def _phase_name(session: ElicitationSession) -> str | None:
        current = session.confirmation.current if session.confirmation else None
        return current.phase.value if current else None

    def generate_summary(self, session_id: str) -> ConfirmationState:
        """End questioning early (if still open) and summarize the current record.

        Raises:
            InvalidTransition: If there is no record yet or the session is confirmed.
        """
        session = self.get_session(session_id)
        if session.record is None:
            raise InvalidTransition("Nothing to summarize yet", action="generate_summary")
        with confirmation_span(session_id, "generate_summary"):
            return self._begin_confirmation(session)

    def confirm(self, session_id: str) -> ConfirmationState:
        session = self.get_session(session_id)
        with confirmation_span(session_id, "confirm"):
            state = self._machine(session, "confirm").confirm(self._current_state(session, "confirm"))
        logger.info(f"Session {session_id} confirmed")
        return state

    def adjust(self, session_id: str, adjustments: list[Adjustment | dict[str, Any]]) -> ConfirmationState:
        """Apply a batch of user corrections to the current summary.

        Adjustments may be given as Adjustment objects or dicts with
        ``fieldPath``/``field_path``, ``newValue``/``new_value`` and ``op``.

        Raises:
            InvalidAdjustment: If any adjustment is invalid; nothing is applied.
            InvalidTransition: If the current snapshot cannot be adjusted.
        """
        session = self.get_session(session_id)
        batch = [self._coerce_adjustment(a) for a in adjustments]
        with confirmation_span(session_id, "adjust", **{"adjustment.count": len(batch)}):
            state = self._machine(session, "adjust").apply_adjustments(
                self._current_state(session, "adjust"), batch
            )
        session.round_state["facts_record"] = state.facts_record.to_dict()
        return state

    def undo(self, session_id: str) -> ConfirmationState:
        """Roll back the most recent adjustment."""
        session = self.get_session(session_id)
        with confirmation_span(session_id, "undo"):
            state = self._machine(session, "undo").undo()
        session.round_state["facts_record"] = state.facts_record.to_dict()
        return state

    def restart(self, session_id: str) -> ConfirmationState | None:
        """Discard the record and turns so elicitation can start over.

        The next submitted answer is treated as a new opening description.
        Returns the RestartRequested snapshot when a summary existed.
        """
        session = self.get_session(session_id)
        with confirmation_span(session_id, "restart"):
            state = None
            if session.confirmation is not None and session.confirmation.current is not None:
                state = session.confirmation.restart(session.confirmation.current)
            session.reset()
        logger.info(f"Session {session_id} restarted")
        return state

    def confirmation_history(self, session_id: str) -> list[ConfirmationState]:
        session = self.get_session(session_id)
        return session.confirmation.history() if session.confirmation else []

    def _machine(self, session: ElicitationSession, action: str) -> ConfirmationMachine:
        if session.confirmation is None:
            raise InvalidTransition("No summary has been generated yet", action=action)
        return session.confirmation

    @staticmethod
    def _coerce_adjustment(item: Adjustment | dict[str, Any]) -> Adjustment:
        if isinstance(item, Adjustment):
            return item
        if not isinstance(item, dict):
            raise InvalidAdjustment(f"Unrecognized adjustment: {item!r}")
        path = item.get("fieldPath", item.get("field_path"))
        if not path:
            raise InvalidAdjustment("Adjustment is missing a field path")
        return Adjustment(
            field_path=path,
            new_value=item.get("newValue", item.get("new_value")),
            op=item.get("op", AdjustmentOp.SET),
        )

    # -------------------------------------------------------------------------
    # Downstream artifacts
    # -------------------------------------------------------------------------

    def build_digest(self, session_id: str) -> digest.FactsDigest:
        """Project the confirmed record into a FactsDigest.

        Raises:
            InvalidTransition: Unless the session has been confirmed.
        """
        session = self.get_session(session_id)
        current = session.confirmation.current if session.confirmation else None
        if current is None or current.phase is not ConfirmationPhase.CONFIRMED:
            raise InvalidTransition(
                "A digest can only be built from a confirmed summary",
                phase=current.phase.value if current else None,
                action="build_digest",
            )
        info = digest.ContextualInfo(
            original_user_input=session.original_input,
            conversation_turns=len(session.turns),
        )
        return digest.build(current.facts_record, info)

    @staticmethod
    def assess_document(document: quality.StructuredDocument | dict[str, Any]) -> quality.QualityReport:
        return quality.assess(document)
