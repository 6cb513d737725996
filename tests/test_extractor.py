"""Tests for FactExtractor, the degraded heuristic and the merge policy."""

import pytest

from elicitor.config import DEGRADED_GOAL_LENGTH, QuestionCategory, UserScope
from elicitor.elicitation.extractor import FactExtractor, degraded_record, merge_records
from elicitor.elicitation.models import (
    ExtractionOutcome,
    FactsRecord,
    QuestioningTurn,
    is_placeholder,
    normalize_history,
)
from elicitor.errors import ElicitationError, InvalidInput, UpstreamUnavailable

# ---------------------------------------------------------------------------
# Structured branch
# ---------------------------------------------------------------------------


class TestStructuredExtraction:
    """Replies containing a valid JSON object are parsed into the record."""

    def test_plain_json_reply(self, fake_service, complete_reply):
        extractor = FactExtractor(fake_service(complete_reply))
        result = extractor.extract([], "I want to save articles for offline reading")

        assert result.outcome is ExtractionOutcome.STRUCTURED
        assert result.warning is None
        assert result.record.core_goal == "Save articles to read later offline"
        assert result.record.core_features == ["Save page", "Offline reading", "Tag articles"]

    def test_fenced_json_reply(self, fake_service):
        reply = 'Here you go:\n```json\n{"coreGoal": "Plan weekly meals", "targetUsers": "Family"}\n```'
        result = FactExtractor(fake_service(reply)).extract([], "meal planner")

        assert not result.degraded
        assert result.record.core_goal == "Plan weekly meals"

    def test_small_team_scope_is_normalized(self, fake_service):
        result = FactExtractor(fake_service({"userScope": "small_team"})).extract([], "x y")
        assert result.record.user_scope is UserScope.TEAM

    def test_prompt_includes_known_facts(self, fake_service, complete_record):
        service = fake_service({"painPoint": "Links rot"})
        FactExtractor(service).extract([], "links rot", prior_record=complete_record)

        prompt = service.calls[0]
        assert any("Facts known so far" in m["content"] for m in prompt)
        assert prompt[-1]["role"] == "system"

    def test_merges_with_prior_record(self, fake_service, complete_record):
        result = FactExtractor(fake_service({"coreFeatures": ["save page", "Share links"]})).extract(
            [], "also share links", prior_record=complete_record
        )
        # Case-insensitive union keeps the first spelling
        assert result.record.core_features == [
            "Save page",
            "Offline reading",
            "Tag articles",
            "Share links",
        ]
        assert result.record.core_goal == complete_record.core_goal


# ---------------------------------------------------------------------------
# Degraded branch
# ---------------------------------------------------------------------------


class TestDegradedExtraction:
    """Every failure mode lands on the heuristic and is tagged with a reason."""

    TEXT = "I want a browser plugin that saves articles so reading later is less tedious"

    def test_no_service(self):
        result = FactExtractor().extract([], self.TEXT)
        assert result.degraded
        assert result.warning.reason == "no_service"

    def test_upstream_unavailable(self, unavailable_service):
        result = FactExtractor(unavailable_service).extract([], self.TEXT)
        assert result.outcome is ExtractionOutcome.DEGRADED
        assert result.warning.reason == "upstream_unavailable"
        assert "connection refused" in result.warning.detail

    def test_unexpected_service_error(self, fake_service):
        result = FactExtractor(fake_service(RuntimeError("boom"))).extract([], self.TEXT)
        assert result.warning.reason == "service_error"

    def test_unparseable_reply(self, fake_service):
        result = FactExtractor(fake_service("Sorry, I cannot help with that.")).extract([], self.TEXT)
        assert result.warning.reason == "unparseable_output"

    def test_malformed_reply(self, fake_service):
        result = FactExtractor(fake_service({"userScope": "galaxy"})).extract([], self.TEXT)
        assert result.warning.reason == "malformed_output"

    def test_goal_is_truncated_input(self):
        record = FactExtractor().extract([], self.TEXT).record
        assert record.core_goal == self.TEXT[:DEGRADED_GOAL_LENGTH]

    def test_keywords_fill_fields(self):
        record = degraded_record(self.TEXT)
        assert record.product_type == "Browser extension"
        assert "Data saving" in record.core_features
        assert record.pain_point == "Manual work is tedious and inefficient"
        assert record.user_scope is UserScope.PERSONAL

    def test_team_scope_without_first_person(self):
        record = degraded_record("Our team needs a website to manage tasks")
        assert record.user_scope is UserScope.TEAM
        assert record.target_users == "Team members"

    def test_unknown_fields_are_placeholders(self):
        record = degraded_record("zzz")
        assert is_placeholder(record.use_scenario)
        assert is_placeholder(record.core_features[0])

    def test_degraded_round_keeps_structured_scope(self, complete_record):
        prior = complete_record.model_copy(update={"user_scope": UserScope.PUBLIC})
        result = FactExtractor().extract([], "my team wants this", prior_record=prior)
        assert result.record.user_scope is UserScope.PUBLIC

    def test_placeholders_never_replace_real_values(self, complete_record):
        result = FactExtractor().extract([], "zzz", prior_record=complete_record)
        assert result.record.use_scenario == complete_record.use_scenario
        assert result.record.core_features == complete_record.core_features

    def test_degraded_round_keeps_known_facts(self, complete_record):
        answer = "It takes me too long every evening, I hate it"
        result = FactExtractor().extract([], answer, prior_record=complete_record)

        assert result.degraded
        assert result.record.core_goal == "Save articles to read later offline"
        assert result.record.target_users == "Myself"
        assert result.record.pain_point == "Bookmarks break when pages go offline"
        assert result.record == complete_record

    def test_degraded_round_fills_missing_facts(self):
        prior = FactsRecord(core_goal="Save articles to read later offline", target_users="Myself")
        result = FactExtractor().extract([], "I save pages by hand and it is slow", prior_record=prior)

        assert result.record.core_goal == "Save articles to read later offline"
        assert result.record.target_users == "Myself"
        assert result.record.pain_point == "Takes too long and needs to be faster"
        assert result.record.core_features == ["Data saving"]


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class TestInputValidation:
    def test_empty_text_without_history_raises(self):
        with pytest.raises(InvalidInput):
            FactExtractor().extract([], "   ")

    def test_empty_text_with_history_uses_last_user_message(self):
        history = [{"role": "user", "content": "A tool to manage recipes"}]
        result = FactExtractor().extract(history, "")
        assert result.record.core_goal == "A tool to manage recipes"

    def test_unknown_category_raises(self):
        with pytest.raises(InvalidInput, match="Unknown question category"):
            FactExtractor().extract([{"question": "q", "answer": "a", "category": "budget"}], "x")

    def test_unknown_role_raises(self):
        with pytest.raises(InvalidInput):
            normalize_history([{"role": "robot", "content": "hi"}])


class TestNormalizeHistory:
    def test_empty_turns_are_dropped(self):
        history = [
            QuestioningTurn(question="", answer="", category=QuestionCategory.DATA),
            {"question": "What data?", "answer": "Recipes", "category": "data"},
        ]
        assert normalize_history(history) == [
            {"role": "assistant", "content": "What data?"},
            {"role": "user", "content": "Recipes"},
        ]


class TestMergeRecords:
    def test_first_round_returns_new(self, complete_record):
        assert merge_records(None, complete_record) is complete_record

    def test_structured_scope_overwrites(self):
        prior = FactsRecord(user_scope=UserScope.PERSONAL)
        merged = merge_records(prior, FactsRecord(user_scope=UserScope.TEAM), structured=True)
        assert merged.user_scope is UserScope.TEAM

    def test_placeholder_list_dropped_once_real_items_exist(self):
        prior = FactsRecord(core_features=["Core features to be clarified"])
        merged = merge_records(prior, FactsRecord(core_features=["Export CSV"]))
        assert merged.core_features == ["Export CSV"]


class TestUpstreamErrorType:
    def test_upstream_is_elicitation_error(self):
        assert issubclass(UpstreamUnavailable, ElicitationError)
