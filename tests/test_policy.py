"""Tests for the questioning policy."""

import pytest

from elicitor.config import CATEGORY_PRIORITY, MAX_ROUNDS, QuestionCategory
from elicitor.elicitation.completeness import CompletenessScore, evaluate
from elicitor.elicitation.models import FactsRecord
from elicitor.elicitation.policy import PolicyAction, SessionContext, decide


class TestProceed:
    """When the policy hands over to confirmation."""

    def test_proceeds_when_critical_complete_and_overall_high(self, complete_record):
        score = evaluate(complete_record)
        decision = decide(complete_record, score, SessionContext())
        assert decision.action is PolicyAction.PROCEED
        assert decision.next_category is None

    def test_continues_when_overall_below_threshold(self, minimal_record):
        decision = decide(minimal_record, evaluate(minimal_record), SessionContext())
        assert decision.should_continue

    def test_critical_gap_blocks_proceed(self):
        score = CompletenessScore(critical=2 / 3, important=1.0, optional=1.0)
        decision = decide(FactsRecord(), score, SessionContext())
        assert decision.action is PolicyAction.CONTINUE

    def test_round_cap_forces_proceed(self):
        """Eight continues force the ninth decision to proceed."""
        record = FactsRecord()
        score = evaluate(record)
        context = SessionContext()
        continues = 0
        for _ in range(MAX_ROUNDS + 1):
            decision = decide(record, score, context)
            if not decision.should_continue:
                break
            continues += 1
            context = context.record_round(decision.next_category)

        assert continues == MAX_ROUNDS
        assert decision.action is PolicyAction.PROCEED
        assert "Round limit reached" in decision.reasoning

    def test_custom_round_cap(self):
        context = SessionContext(rounds_taken=2, max_rounds=2)
        decision = decide(FactsRecord(), evaluate(FactsRecord()), context)
        assert decision.action is PolicyAction.PROCEED


class TestCategoryChoice:
    def test_lowest_tier_wins(self, minimal_record):
        # critical complete; painpoint wins the zero-score tie on priority
        decision = decide(minimal_record, evaluate(minimal_record), SessionContext())
        assert decision.next_category is QuestionCategory.PAINPOINT

    def test_priority_breaks_ties(self):
        decision = decide(FactsRecord(), CompletenessScore(0.0, 0.0, 0.0), SessionContext())
        assert decision.next_category is CATEGORY_PRIORITY[0]

    def test_never_repeats_previous_category(self):
        context = SessionContext(asked_categories=(QuestionCategory.FUNCTIONAL,))
        decision = decide(FactsRecord(), CompletenessScore(0.0, 0.0, 0.0), context)
        assert decision.next_category is not QuestionCategory.FUNCTIONAL
        assert decision.next_category is QuestionCategory.PAINPOINT

    def test_no_back_to_back_repeats_over_a_session(self):
        record = FactsRecord()
        score = evaluate(record)
        context = SessionContext()
        previous = None
        for _ in range(MAX_ROUNDS):
            decision = decide(record, score, context)
            assert decision.next_category is not previous
            previous = decision.next_category
            context = context.record_round(decision.next_category)


class TestReasoning:
    def test_names_tier_and_missing_fields(self, minimal_record):
        decision = decide(minimal_record, evaluate(minimal_record), SessionContext())
        assert "important" in decision.reasoning
        assert "use_scenario" in decision.reasoning

    def test_degraded_rounds_are_flagged(self, minimal_record):
        context = SessionContext(degraded=True)
        decision = decide(minimal_record, evaluate(minimal_record), context)
        assert decision.reasoning.endswith("(degraded extraction)")

    @pytest.mark.parametrize("rounds", [0, 3])
    def test_reasoning_is_deterministic(self, minimal_record, rounds):
        context = SessionContext(rounds_taken=rounds)
        score = evaluate(minimal_record)
        assert decide(minimal_record, score, context) == decide(minimal_record, score, context)


class TestSessionContext:
    def test_record_round_is_non_mutating(self):
        context = SessionContext()
        advanced = context.record_round(QuestionCategory.DATA, degraded=True)
        assert context.rounds_taken == 0
        assert advanced.rounds_taken == 1
        assert advanced.last_category is QuestionCategory.DATA
        assert advanced.degraded is True
