"""Tests for generated-document quality assessment."""

import pytest

from elicitor.elicitation.quality import (
    StructuredDocument,
    assess,
    score_ai_coding_readiness,
    score_clarity,
    score_completeness,
    score_feasibility,
    score_specificity,
    score_visual_quality,
)


@pytest.fixture
def full_document():
    """A document with every section filled in (camelCase keys, as generated)."""
    return {
        "productOverview": {
            "projectName": "ReadLater",
            "coreGoal": "Save any article and read it offline later",
            "targetUsers": "Commuters",
        },
        "functionalRequirements": {
            "coreModules": [
                {
                    "name": "Capture",
                    "description": "Input: the current page URL. Output: a clean offline copy",
                    "features": ["Save page"],
                },
                {
                    "name": "Library",
                    "description": "Input: saved pages. Output: a searchable list of articles",
                    "features": ["Search"],
                },
                {
                    "name": "Reader",
                    "description": "Input: one saved page. Output: distraction-free view",
                    "features": ["Reader mode"],
                },
            ],
            "userStories": [
                {"title": "Save", "story": "As a commuter I save pages", "estimatedEffort": "simple"}
            ],
        },
        "technicalSpecification": {"summary": "Chrome extension with local storage"},
        "userExperienceDesign": {"summary": "Popup plus reader view"},
        "technicalSpecs": {
            "recommendedStack": {
                "frontend": "Chrome extension popup (TypeScript, React)",
                "backend": "None, runs fully client side",
                "database": "IndexedDB",
                "deployment": "Chrome Web Store",
            },
            "systemArchitecture": "Content script captures pages; background worker stores them",
        },
        "uxDesign": {"visualStyle": "Minimal serif reader", "keyInteractions": ["One-click save"]},
        "acceptanceCriteria": {"functionalTests": ["Saving works offline"]},
        "dataModel": {"entities": [{"name": "Article"}]},
        "functionalLogic": {"coreFeatures": [{"name": "Save", "userSteps": ["Click icon", "Done"]}]},
    }


class TestAssess:
    def test_full_document_scores_high(self, full_document):
        report = assess(full_document)

        assert report.completeness == pytest.approx(1.0)
        assert report.clarity == pytest.approx(1.0)
        assert report.specificity == pytest.approx(1.0)
        assert report.feasibility == pytest.approx(1.0)
        assert report.visual_quality == pytest.approx(1.0)
        assert report.ai_coding_readiness == pytest.approx(1.0)
        assert report.overall_score == pytest.approx(1.0)

    def test_overall_is_weighted_sum(self, full_document):
        report = assess(full_document)
        expected = (
            0.25 * report.completeness
            + 0.20 * report.clarity
            + 0.15 * report.specificity
            + 0.15 * report.feasibility
            + 0.10 * report.visual_quality
            + 0.15 * report.ai_coding_readiness
        )
        assert report.overall_score == pytest.approx(expected)

    def test_missing_technical_specification_caps_completeness(self, full_document):
        del full_document["technicalSpecification"]
        report = assess(full_document)
        assert report.completeness <= 0.8

    def test_missing_section_only_lowers_its_dimension(self, full_document):
        before = assess(full_document)
        del full_document["userExperienceDesign"]
        after = assess(full_document)

        assert after.completeness < before.completeness
        assert after.clarity == before.clarity
        assert after.specificity == before.specificity
        assert after.visual_quality == before.visual_quality
        assert after.ai_coding_readiness == before.ai_coding_readiness

    def test_missing_stack_only_lowers_specificity(self, full_document):
        before = assess(full_document)
        del full_document["technicalSpecs"]["recommendedStack"]
        after = assess(full_document)

        assert after.specificity < before.specificity
        assert after.clarity == before.clarity
        assert after.feasibility == before.feasibility
        assert after.ai_coding_readiness == before.ai_coding_readiness
        assert after.completeness == before.completeness

    def test_accepts_model_instance(self, full_document):
        document = StructuredDocument.model_validate(full_document)
        assert assess(document) == assess(full_document)


class TestMessages:
    def test_strengths_for_strong_document(self, full_document):
        report = assess(full_document)
        assert len(report.strengths) == 5
        assert report.recommendations == ("Quality is good; keep refining the detailed descriptions",)

    def test_empty_document_gets_recommendations_and_fallback_strength(self):
        report = assess({})
        assert len(report.recommendations) == 5
        assert report.strengths == ("Sound structure with the basics needed to start implementation",)

    def test_lists_are_never_empty(self, full_document):
        del full_document["acceptanceCriteria"]
        report = assess(full_document)
        assert report.recommendations
        assert report.strengths

    def test_markdown(self, full_document):
        markdown = assess(full_document).to_markdown()
        assert "**Overall quality:** 100%" in markdown
        assert "| Ai Coding Readiness | 100% |" in markdown


class TestSubScores:
    def test_empty_document_baselines(self):
        document = StructuredDocument()
        assert score_completeness(document) == 0.0
        assert score_clarity(document) == 0.0
        assert score_specificity(document) == 0.0
        assert score_feasibility(document) == pytest.approx(0.7)
        assert score_visual_quality(document) == pytest.approx(0.6)
        assert score_ai_coding_readiness(document) == 0.0

    def test_module_count_steps(self):
        one = StructuredDocument.model_validate(
            {"functionalRequirements": {"coreModules": [{"name": "A"}]}}
        )
        # section 0.2 + one module 0.1 out of 1.0
        assert score_completeness(one) == pytest.approx(0.3)

    def test_short_stack_earns_partial_specificity(self):
        document = StructuredDocument.model_validate(
            {"technicalSpecs": {"recommendedStack": {"frontend": "React", "backend": "Flask"}}}
        )
        assert score_specificity(document) == pytest.approx(0.15)

    def test_chinese_io_keywords(self):
        document = StructuredDocument.model_validate(
            {"functionalRequirements": {"coreModules": [{"description": "输入网址，输出摘要"}]}}
        )
        assert score_ai_coding_readiness(document) == pytest.approx(0.3)
