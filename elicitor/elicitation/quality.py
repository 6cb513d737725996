"""Deterministic quality assessment of a generated requirements document.

Six sub-scores, each computed by its own function from presence and length
checks on a distinct part of the document. A section missing from the
document therefore lowers only the dimension that inspects it.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from elicitor.config import QUALITY_WEIGHTS

logger = logging.getLogger(__name__)

_DOC_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# =============================================================================
# Document shape
# =============================================================================


class ProductOverview(BaseModel):
    model_config = _DOC_CONFIG

    project_name: str = ""
    vision_statement: str = ""
    core_goal: str = ""
    target_users: str = ""
    use_scenarios: list[str] = []


class CoreModule(BaseModel):
    model_config = _DOC_CONFIG

    id: str = ""
    name: str = ""
    description: str = ""
    features: list[str] = []
    priority: str = ""


class UserStory(BaseModel):
    model_config = _DOC_CONFIG

    id: str = ""
    title: str = ""
    story: str = ""
    acceptance_criteria: list[str] = []
    priority: str = ""
    estimated_effort: str = ""


class FunctionalSpec(BaseModel):
    model_config = _DOC_CONFIG

    core_modules: list[CoreModule] | None = None
    user_stories: list[UserStory] | None = None


class TechStack(BaseModel):
    model_config = _DOC_CONFIG

    frontend: str = ""
    backend: str = ""
    database: str = ""
    deployment: str = ""


class TechnicalDetails(BaseModel):
    model_config = _DOC_CONFIG

    recommended_stack: TechStack | None = None
    system_architecture: str = ""
    integration_needs: list[str] = []


class UXDetails(BaseModel):
    model_config = _DOC_CONFIG

    user_journey: list[str] = []
    key_interactions: list[str] | None = None
    visual_style: str = ""


class AcceptanceSpec(BaseModel):
    model_config = _DOC_CONFIG

    functional_tests: list[str] | None = None
    quality_metrics: list[str] = []
    success_criteria: list[str] = []


class DataModel(BaseModel):
    model_config = _DOC_CONFIG

    entities: list[dict[str, Any]] = []


class FeatureLogic(BaseModel):
    model_config = _DOC_CONFIG

    name: str = ""
    user_steps: list[str] = []


class FunctionalLogic(BaseModel):
    model_config = _DOC_CONFIG

    core_features: list[FeatureLogic] = []


class StructuredDocument(BaseModel):
    """Shape of a generated requirements document.

    The four top-level sections are checked for presence only; the
    ``technical_specs``, ``ux_design``, ``data_model`` and ``functional_logic``
    blocks carry the details the other dimensions inspect.
    """

    model_config = _DOC_CONFIG

    product_overview: ProductOverview | None = None
    functional_requirements: FunctionalSpec | None = None
    technical_specification: dict[str, Any] | str | None = None
    user_experience_design: dict[str, Any] | str | None = None
    technical_specs: TechnicalDetails | None = None
    ux_design: UXDetails | None = None
    acceptance_criteria: AcceptanceSpec | None = None
    data_model: DataModel | None = None
    functional_logic: FunctionalLogic | None = None


class QualityReport(BaseModel):
    """Scores in [0, 1] plus never-empty recommendations and strengths."""

    model_config = ConfigDict(frozen=True)

    completeness: float
    clarity: float
    specificity: float
    feasibility: float
    visual_quality: float
    ai_coding_readiness: float
    overall_score: float
    recommendations: tuple[str, ...]
    strengths: tuple[str, ...]

    def to_markdown(self) -> str:
        lines = [
            f"**Overall quality:** {self.overall_score:.0%}",
            "",
            "| Dimension | Score |",
            "|---|---|",
        ]
        for name in QUALITY_WEIGHTS:
            lines.append(f"| {name.replace('_', ' ').title()} | {getattr(self, name):.0%} |")
        lines.extend(["", "### Recommendations"])
        lines.extend(f"- {item}" for item in self.recommendations)
        lines.extend(["", "### Strengths"])
        lines.extend(f"- {item}" for item in self.strengths)
        return "\n".join(lines)


# =============================================================================
# Sub-scores
# =============================================================================

_REQUIRED_SECTIONS = (
    "product_overview",
    "functional_requirements",
    "technical_specification",
    "user_experience_design",
)

_SIMPLE_EFFORT = {"simple", "easy", "low", "简单"}


def _modules(document: StructuredDocument) -> list[CoreModule] | None:
    spec = document.functional_requirements
    return spec.core_modules if spec else None


def _stack(document: StructuredDocument) -> TechStack | None:
    return document.technical_specs.recommended_stack if document.technical_specs else None


def score_completeness(document: StructuredDocument) -> float:
    # Points in tenths: 2 per section, up to 2 more for the module list
    points = sum(2 for section in _REQUIRED_SECTIONS if getattr(document, section))
    max_points = 2 * len(_REQUIRED_SECTIONS)

    modules = _modules(document)
    if modules is not None:
        max_points += 2
        if len(modules) >= 3:
            points += 2
        elif len(modules) >= 1:
            points += 1

    return min(points / max_points, 1.0)


def score_clarity(document: StructuredDocument) -> float:
    overview = document.product_overview
    score = 0.0
    if overview and len(overview.project_name) > 3:
        score += 0.2
    if overview and len(overview.core_goal) > 20:
        score += 0.3
    if any(len(module.description) > 30 for module in _modules(document) or []):
        score += 0.3
    if overview and len(overview.target_users) > 3:
        score += 0.2
    return score


def score_specificity(document: StructuredDocument) -> float:
    score = 0.0
    acceptance = document.acceptance_criteria
    if acceptance and acceptance.functional_tests:
        score += 0.4

    stack = _stack(document)
    if stack is not None:
        stack_json = json.dumps(
            stack.model_dump(by_alias=True), ensure_ascii=False, separators=(",", ":")
        )
        if len(stack_json) > 100:
            score += 0.3
        elif len(stack_json) > 50:
            score += 0.15

    spec = document.functional_requirements
    if spec and spec.user_stories:
        score += 0.3
    return min(score, 1.0)


def score_feasibility(document: StructuredDocument) -> float:
    score = 0.7
    specs = document.technical_specs
    if specs and specs.system_architecture.strip():
        score += 0.2
    spec = document.functional_requirements
    stories = spec.user_stories if spec and spec.user_stories else []
    if any(story.estimated_effort.strip().lower() in _SIMPLE_EFFORT for story in stories):
        score += 0.1
    return min(score, 1.0)


def score_visual_quality(document: StructuredDocument) -> float:
    score = 0.6
    ux = document.ux_design
    if ux and ux.visual_style:
        score += 0.2
    if ux and ux.key_interactions is not None:
        score += 0.2
    return min(score, 1.0)


def _describes_io(description: str) -> bool:
    lowered = description.lower()
    return ("input" in lowered and "output" in lowered) or ("输入" in lowered and "输出" in lowered)


def score_ai_coding_readiness(document: StructuredDocument) -> float:
    score = 0.0
    modules = _modules(document)
    if modules:
        with_io = sum(1 for module in modules if _describes_io(module.description))
        score += (with_io / len(modules)) * 0.3

    if document.data_model and document.data_model.entities:
        score += 0.25

    if modules and all(module.features for module in modules):
        score += 0.2

    features = document.functional_logic.core_features if document.functional_logic else []
    if features:
        with_steps = sum(1 for feature in features if feature.user_steps)
        score += (with_steps / len(features)) * 0.25

    return min(score, 1.0)


# =============================================================================
# Recommendations and strengths
# =============================================================================

_RECOMMENDATION_RULES: tuple[tuple[str, float, str], ...] = (
    ("completeness", 0.8, "Add the missing document sections so no dimension is left out"),
    ("clarity", 0.7, "Use clearer descriptions so requirements are easy to understand"),
    ("specificity", 0.7, "Add concrete acceptance criteria and technical details"),
    ("ai_coding_readiness", 0.7, "Spell out input/output logic and the data model"),
    ("feasibility", 0.8, "Review technical complexity to make sure the plan is feasible"),
)
_RECOMMENDATION_FALLBACK = "Quality is good; keep refining the detailed descriptions"

_STRENGTH_RULES: tuple[tuple[str, float, str], ...] = (
    ("completeness", 0.9, "Covers all the main dimensions of a requirements document"),
    ("clarity", 0.8, "Requirements are clearly described and easy to implement"),
    ("specificity", 0.8, "Technical details are concrete and acceptance criteria explicit"),
    ("ai_coding_readiness", 0.8, "Ready for AI-assisted implementation"),
    ("feasibility", 0.9, "Technical plan is feasible with low delivery risk"),
)
_STRENGTH_FALLBACK = "Sound structure with the basics needed to start implementation"


def _recommendations(scores: dict[str, float]) -> tuple[str, ...]:
    fired = [message for name, limit, message in _RECOMMENDATION_RULES if scores[name] < limit]
    return tuple(fired) or (_RECOMMENDATION_FALLBACK,)


def _strengths(scores: dict[str, float]) -> tuple[str, ...]:
    fired = [message for name, limit, message in _STRENGTH_RULES if scores[name] >= limit]
    return tuple(fired) or (_STRENGTH_FALLBACK,)


def assess(document: StructuredDocument | dict[str, Any]) -> QualityReport:
    """Score a document across six dimensions.

    Args:
        document: A StructuredDocument or a dict in its shape (camelCase or snake_case keys)

    Returns:
        QualityReport with weighted overall score
    """
    if not isinstance(document, StructuredDocument):
        document = StructuredDocument.model_validate(document)

    scores = {
        "completeness": score_completeness(document),
        "clarity": score_clarity(document),
        "specificity": score_specificity(document),
        "feasibility": score_feasibility(document),
        "visual_quality": score_visual_quality(document),
        "ai_coding_readiness": score_ai_coding_readiness(document),
    }
    overall = sum(QUALITY_WEIGHTS[name] * value for name, value in scores.items())

    report = QualityReport(
        **scores,
        overall_score=overall,
        recommendations=_recommendations(scores),
        strengths=_strengths(scores),
    )
    logger.info(f"Document quality assessed: overall={overall:.2f}")
    return report
