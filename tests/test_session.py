"""Tests for the session engine: questioning, confirmation and downstream artifacts."""

import pytest

from elicitor.config import QuestionCategory
from elicitor.elicitation import completeness
from elicitor.elicitation.completeness import CompletenessScore
from elicitor.elicitation.confirmation import Adjustment, ConfirmationPhase
from elicitor.elicitation.extractor import FactExtractor
from elicitor.elicitation.policy import PolicyAction
from elicitor.errors import (
    InvalidAdjustment,
    InvalidInput,
    InvalidTransition,
    SessionNotFound,
)
from elicitor.session import ElicitationEngine

OPENING = "I want a browser plugin that saves articles"


@pytest.fixture
def partial_engine(fake_service, partial_reply):
    """Engine whose service never reports any features."""
    return ElicitationEngine(FactExtractor(fake_service(partial_reply)))


@pytest.fixture
def summarized(complete_engine):
    """Engine holding session 's1' in the SummaryGenerated phase."""
    complete_engine.start_session("s1", OPENING)
    return complete_engine


# =============================================================================
# Questioning
# =============================================================================


class TestStartSession:
    def test_incomplete_input_asks_a_question(self, degraded_engine):
        result = degraded_engine.start_session("s1", OPENING)

        assert result.should_continue
        assert result.round_number == 1
        assert result.degraded
        assert result.next_question is not None
        assert result.next_question.category is QuestionCategory.PAINPOINT
        assert degraded_engine.get_next_question("s1") == result.next_question

    def test_complete_input_goes_straight_to_confirmation(self, complete_engine):
        result = complete_engine.start_session("s1", OPENING)

        assert result.action is PolicyAction.PROCEED
        assert result.next_question is None
        assert result.confirmation.phase is ConfirmationPhase.SUMMARY_GENERATED
        assert complete_engine.get_next_question("s1") is None

    @pytest.mark.parametrize("session_id,text", [("", OPENING), ("s1", "   ")])
    def test_rejects_blank_arguments(self, degraded_engine, session_id, text):
        with pytest.raises(InvalidInput):
            degraded_engine.start_session(session_id, text)

    def test_rejects_duplicate_id(self, degraded_engine):
        degraded_engine.start_session("s1", OPENING)
        with pytest.raises(InvalidInput, match="already exists"):
            degraded_engine.start_session("s1", OPENING)

    def test_sessions_are_independent(self, degraded_engine):
        degraded_engine.start_session("a", OPENING)
        degraded_engine.submit_answer("a", "It breaks when I travel")
        degraded_engine.start_session("b", OPENING)

        assert degraded_engine.get_session("a").context.rounds_taken == 2
        assert degraded_engine.get_session("b").context.rounds_taken == 1


class TestSubmitAnswer:
    def test_answer_becomes_a_turn(self, degraded_engine):
        first = degraded_engine.start_session("s1", OPENING)
        degraded_engine.submit_answer("s1", "Articles vanish")

        turns = degraded_engine.get_session("s1").turns
        assert len(turns) == 1
        assert turns[0].question == first.next_question.text
        assert turns[0].answer == "Articles vanish"

    def test_consecutive_rounds_change_category(self, degraded_engine):
        result = degraded_engine.start_session("s1", OPENING)
        categories = [result.next_question.category]
        for answer in ("Articles vanish", "Web pages", "Just a popup"):
            result = degraded_engine.submit_answer("s1", answer)
            categories.append(result.next_question.category)

        assert all(a != b for a, b in zip(categories, categories[1:]))

    def test_round_cap_ends_questioning(self):
        engine = ElicitationEngine(FactExtractor(service=None), max_rounds=3)
        result = engine.start_session("s1", OPENING)
        actions = [result.action]
        while result.should_continue:
            result = engine.submit_answer("s1", "Not sure")
            actions.append(result.action)

        assert actions == [PolicyAction.CONTINUE] * 3 + [PolicyAction.PROCEED]
        assert result.reasoning.startswith("Round limit reached (3/3)")
        assert result.confirmation is not None

    def test_stop_phrase_ends_questioning(self, partial_engine):
        assert partial_engine.start_session("s1", OPENING).should_continue

        result = partial_engine.submit_answer("s1", "That's enough, generate it")

        assert result.action is PolicyAction.PROCEED
        assert result.reasoning.startswith("User asked to stop")
        assert result.confirmation.facts_record.core_goal == "Save articles to read later offline"
        assert partial_engine.get_session("s1").turns[-1].answer == "That's enough, generate it"

    def test_stop_phrase_never_becomes_the_goal(self, degraded_engine):
        degraded_engine.start_session("s1", OPENING)

        result = degraded_engine.submit_answer("s1", "that's enough, generate it")

        assert result.action is PolicyAction.PROCEED
        assert result.confirmation.facts_record.core_goal == OPENING
        assert degraded_engine.get_session("s1").record.core_goal == OPENING

    def test_continue_phrase_keeps_asking(self, partial_engine):
        partial_engine.start_session("s1", OPENING)
        assert partial_engine.submit_answer("s1", "Please continue").should_continue

    def test_answer_after_proceed_raises(self, summarized):
        with pytest.raises(InvalidTransition) as exc_info:
            summarized.submit_answer("s1", "one more thing")
        assert exc_info.value.phase == "SummaryGenerated"

    def test_unknown_session(self, degraded_engine):
        with pytest.raises(SessionNotFound):
            degraded_engine.submit_answer("missing", "hello")

    def test_service_outage_degrades_instead_of_failing(self, unavailable_service):
        engine = ElicitationEngine(FactExtractor(unavailable_service))
        result = engine.start_session("s1", OPENING)

        assert result.degraded
        assert result.warning.startswith("upstream_unavailable")
        assert engine.get_session("s1").last_warning == result.warning


class TestGetCompleteness:
    def test_scores_current_record(self, summarized):
        score = summarized.get_completeness("s1")
        assert score.critical == 1.0

    def test_falls_back_when_evaluation_fails(self, summarized, monkeypatch):
        def broken(record):
            raise RuntimeError("scoring exploded")

        monkeypatch.setattr(completeness, "evaluate", broken)
        assert summarized.get_completeness("s1") == CompletenessScore.fallback()

    def test_falls_back_without_record(self, summarized):
        summarized.restart("s1")
        assert summarized.get_completeness("s1") == CompletenessScore.fallback()


# =============================================================================
# Confirmation
# =============================================================================


class TestConfirmation:
    def test_confirm_then_digest(self, summarized):
        confirmed = summarized.confirm("s1")
        assert confirmed.phase is ConfirmationPhase.CONFIRMED

        digest = summarized.build_digest("s1")
        assert digest.contextual_info.original_user_input == OPENING
        assert digest.contextual_info.conversation_turns == 0
        assert digest.product_definition.core_goal == "Save articles to read later offline"

    def test_digest_requires_confirmation(self, summarized):
        with pytest.raises(InvalidTransition) as exc_info:
            summarized.build_digest("s1")
        assert exc_info.value.phase == "SummaryGenerated"

    def test_confirm_without_summary_raises(self, degraded_engine):
        degraded_engine.start_session("s1", OPENING)
        with pytest.raises(InvalidTransition):
            degraded_engine.confirm("s1")

    def test_generate_summary_ends_questioning_early(self, degraded_engine):
        degraded_engine.start_session("s1", OPENING)
        state = degraded_engine.generate_summary("s1")

        assert state.phase is ConfirmationPhase.SUMMARY_GENERATED
        assert degraded_engine.get_next_question("s1") is None
        with pytest.raises(InvalidTransition):
            degraded_engine.submit_answer("s1", "more")

    def test_adjust_accepts_dicts(self, summarized):
        state = summarized.adjust(
            "s1",
            [
                {"fieldPath": "coreGoal", "newValue": "Read articles on the train"},
                {"field_path": "coreFeatures", "new_value": "Search", "op": "append"},
            ],
        )

        assert state.facts_record.core_goal == "Read articles on the train"
        assert state.facts_record.core_features[-1] == "Search"
        assert summarized.get_session("s1").record == state.facts_record

    def test_adjust_is_all_or_nothing(self, summarized):
        before = summarized.confirmation_history("s1")

        with pytest.raises(InvalidAdjustment):
            summarized.adjust("s1", [Adjustment("coreGoal", "Changed"), Adjustment("budget", "100")])

        assert summarized.confirmation_history("s1") == before
        assert summarized.get_session("s1").record.core_goal == "Save articles to read later offline"

    @pytest.mark.parametrize(
        "item",
        [{"newValue": "x"}, {"fieldPath": "coreGoal", "op": "merge"}, "coreGoal=x"],
    )
    def test_malformed_adjustment_dicts(self, summarized, item):
        with pytest.raises(InvalidAdjustment):
            summarized.adjust("s1", [item])

    def test_undo_restores_record(self, summarized):
        summarized.adjust("s1", [{"fieldPath": "targetUsers", "newValue": "Students"}])
        state = summarized.undo("s1")

        assert state.facts_record.target_users == "Myself"
        assert summarized.get_session("s1").record.target_users == "Myself"

    def test_restart_clears_session(self, summarized):
        state = summarized.restart("s1")
        session = summarized.get_session("s1")

        assert state.phase is ConfirmationPhase.RESTART_REQUESTED
        assert session.record is None
        assert session.turns == []
        assert session.questioning_open

    def test_answer_after_restart_is_new_opening(self, summarized):
        summarized.restart("s1")
        result = summarized.submit_answer("s1", "A habit tracker for my family")

        assert result.round_number == 1
        assert summarized.get_session("s1").original_input == "A habit tracker for my family"
        assert result.confirmation.phase is ConfirmationPhase.SUMMARY_GENERATED

    def test_blank_answer_after_restart_raises(self, summarized):
        summarized.restart("s1")
        with pytest.raises(InvalidInput):
            summarized.submit_answer("s1", "  ")

    def test_history_records_every_snapshot(self, summarized):
        summarized.adjust("s1", [{"fieldPath": "painPoint", "newValue": "Links rot"}])
        summarized.confirm("s1")

        phases = [s.phase for s in summarized.confirmation_history("s1")]
        assert phases == [
            ConfirmationPhase.SUMMARY_GENERATED,
            ConfirmationPhase.ADJUSTED,
            ConfirmationPhase.SUMMARY_GENERATED,
            ConfirmationPhase.CONFIRMED,
        ]


# =============================================================================
# Lifecycle and quality
# =============================================================================


class TestLifecycle:
    def test_end_session(self, summarized):
        summarized.end_session("s1")
        assert not summarized.has_session("s1")
        with pytest.raises(SessionNotFound):
            summarized.get_session("s1")

    def test_assess_document(self):
        report = ElicitationEngine.assess_document({})
        assert 0.0 <= report.overall_score <= 1.0
        assert report.recommendations
