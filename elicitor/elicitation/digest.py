"""Facts digest: the frozen, externally consumed projection of a confirmed record.

Every FactsRecord field is copied verbatim into one of four sections. The
remaining section fields (problem statement, data entities, roles,
limitations, security, business value, success metrics) are inferred
deterministically from the record.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

from elicitor.config import TechnicalLevel, UserScope
from elicitor.elicitation.confirmation import assess_technical_level
from elicitor.elicitation.models import FactsRecord, is_placeholder

logger = logging.getLogger(__name__)

_FROZEN = ConfigDict(frozen=True)


# =============================================================================
# Digest models
# =============================================================================


class ContextualInfo(BaseModel):
    """Metadata the caller attaches to a digest for traceability."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    original_user_input: str = ""
    conversation_turns: int = 0
    data_handling: str = ""


class DataEntity(BaseModel):
    model_config = _FROZEN

    name: str
    description: str
    key_fields: tuple[str, ...]


class UserRole(BaseModel):
    model_config = _FROZEN

    role: str
    description: str
    permissions: tuple[str, ...]


class ProductDefinition(BaseModel):
    model_config = _FROZEN

    type: str
    core_goal: str
    target_users: str
    user_scope: UserScope
    problem_statement: str


class FunctionalRequirements(BaseModel):
    model_config = _FROZEN

    core_features: tuple[str, ...]
    use_scenarios: tuple[str, ...]
    user_journey: str
    journey_outline: str
    input_output: str
    data_entities: tuple[DataEntity, ...]
    user_roles: tuple[UserRole, ...]


class Constraints(BaseModel):
    model_config = _FROZEN

    technical_level: TechnicalLevel
    key_limitations: tuple[str, ...]
    platform_preference: str
    performance_requirements: str
    security_requirements: tuple[str, ...]
    technical_hints: tuple[str, ...]
    integration_needs: tuple[str, ...]


class DigestContext(BaseModel):
    model_config = _FROZEN

    pain_points: tuple[str, ...]
    current_solutions: tuple[str, ...]
    business_value: str
    success_metrics: tuple[str, ...]
    data_handling: str
    original_user_input: str
    conversation_turns: int


class FactsDigest(BaseModel):
    """Canonical input to document generation. Immutable once built."""

    model_config = _FROZEN

    product_definition: ProductDefinition
    functional_requirements: FunctionalRequirements
    constraints: Constraints
    contextual_info: DigestContext

    def to_markdown(self) -> str:
        product = self.product_definition
        functional = self.functional_requirements
        constraints = self.constraints
        context = self.contextual_info

        lines = [
            "# Facts Digest",
            "",
            "## Product Definition",
            f"- **Type:** {product.type}",
            f"- **Core goal:** {product.core_goal}",
            f"- **Target users:** {product.target_users} ({product.user_scope.value})",
            f"- **Problem:** {product.problem_statement}",
            "",
            "## Functional Requirements",
        ]
        lines.extend(f"- {feature}" for feature in functional.core_features)
        lines.append(f"- **Journey:** {functional.user_journey or functional.journey_outline}")
        lines.append(f"- **Entities:** {', '.join(e.name for e in functional.data_entities)}")
        lines.append(f"- **Roles:** {', '.join(r.role for r in functional.user_roles)}")
        lines.extend(
            [
                "",
                "## Constraints",
                f"- **Technical level:** {constraints.technical_level.value}",
                f"- **Platform:** {constraints.platform_preference}",
            ]
        )
        lines.extend(f"- {limitation}" for limitation in constraints.key_limitations)
        lines.extend(["", "## Context", f"- **Business value:** {context.business_value}"])
        lines.extend(f"- Metric: {metric}" for metric in context.success_metrics)
        return "\n".join(lines)


# =============================================================================
# Inference helpers
# =============================================================================


def _informative(value: str) -> bool:
    return bool(value.strip()) and not is_placeholder(value)


def _texts(*values: str) -> tuple[str, ...]:
    return tuple(v for v in values if v.strip())


def infer_product_category(record: FactsRecord) -> str:
    """Coarse product category used to pick limitations."""
    text = f"{record.product_type} {record.core_goal}".lower()
    if any(k in text for k in ("extension", "plugin", "插件")):
        return "browser_extension"
    if any(k in text for k in ("manage", "管理")):
        return "management_tool"
    if any(k in text for k in ("web", "site", "网站", "应用")):
        return "web_app"
    return "utility_tool"


def problem_statement(record: FactsRecord) -> str:
    goal = record.core_goal or "this product"
    if _informative(record.pain_point) and len(record.pain_point) > 5:
        return f"Users face this problem: {record.pain_point}. The product addresses it by: {goal}."
    return f"Users need {goal} to work more efficiently."


_STEP_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("extract", "Extract in one click"),
    ("save", "Save results"),
    ("export", "Export data"),
    ("manage", "Manage content"),
    ("analy", "Analyze"),
    ("create", "Create content"),
    ("edit", "Edit content"),
    ("search", "Search"),
)


def journey_outline(features: tuple[str, ...]) -> str:
    steps = []
    for feature in features[:3]:
        lowered = feature.lower()
        step = next((label for key, label in _STEP_KEYWORDS if key in lowered), feature)
        steps.append(step)
    return " → ".join(steps) if steps else "Open → Choose a function → Run it → Get the result"


_ENTITY_RULES: tuple[tuple[tuple[str, ...], DataEntity], ...] = (
    (
        ("user", "account", "用户", "账户"),
        DataEntity(name="User", description="User profile", key_fields=("id", "name", "email", "role")),
    ),
    (
        ("content", "document", "note", "内容", "文档"),
        DataEntity(
            name="Content",
            description="Authored content",
            key_fields=("id", "title", "content", "created_at", "author_id"),
        ),
    ),
    (
        ("task", "project", "任务", "项目"),
        DataEntity(
            name="Task",
            description="Unit of work",
            key_fields=("id", "title", "description", "status", "assignee_id", "due_date"),
        ),
    ),
    (
        ("data", "record", "数据", "记录"),
        DataEntity(
            name="Record",
            description="Captured data record",
            key_fields=("id", "data", "timestamp", "source"),
        ),
    ),
)

_DEFAULT_ENTITY = DataEntity(
    name="Item", description="Core data item", key_fields=("id", "name", "content", "created_at")
)


def infer_data_entities(features: tuple[str, ...]) -> tuple[DataEntity, ...]:
    text = " ".join(features).lower()
    entities = tuple(entity for keywords, entity in _ENTITY_RULES if any(k in text for k in keywords))
    return entities or (_DEFAULT_ENTITY,)


_ROLES_BY_SCOPE: dict[UserScope, tuple[UserRole, ...]] = {
    UserScope.PERSONAL: (
        UserRole(
            role="User",
            description="Single owner using every feature",
            permissions=("all features", "own data"),
        ),
    ),
    UserScope.TEAM: (
        UserRole(
            role="Admin",
            description="Configures the team workspace",
            permissions=("manage team", "configure", "view all data"),
        ),
        UserRole(
            role="Member",
            description="Uses the core features",
            permissions=("core features", "own data"),
        ),
    ),
    UserScope.PUBLIC: (
        UserRole(
            role="Registered user",
            description="Uses the basic features",
            permissions=("basic features", "own account"),
        ),
        UserRole(
            role="Operator",
            description="Runs and maintains the service",
            permissions=("system admin", "user admin", "data admin"),
        ),
    ),
}


def infer_user_roles(scope: UserScope) -> tuple[UserRole, ...]:
    return _ROLES_BY_SCOPE[scope]


_LIMITATIONS_BY_CATEGORY: dict[str, list[str]] = {
    "browser_extension": [
        "Browser permission limits",
        "Cross-origin restrictions",
        "Limited local storage",
    ],
    "web_app": ["Requires a network connection", "Browser compatibility"],
    "management_tool": ["Concurrent user limits", "Data volume limits"],
}


def infer_key_limitations(record: FactsRecord, level: TechnicalLevel) -> tuple[str, ...]:
    limitations = _LIMITATIONS_BY_CATEGORY.get(infer_product_category(record), [])

    if level is TechnicalLevel.SIMPLE:
        limitations = [*limitations, "Deliberately small feature set", "Limited extensibility"]
    elif level is TechnicalLevel.COMPLEX:
        limitations = [*limitations, "Longer development cycle", "Higher maintenance cost"]
    return tuple(limitations)


def infer_platform_preference(hints: list[str]) -> str:
    text = " ".join(hints).lower()
    if any(k in text for k in ("chrome", "firefox", "extension", "插件")):
        return "Browser extension"
    if any(k in text for k in ("web", "html", "javascript")):
        return "Web application"
    if any(k in text for k in ("desktop", "electron")):
        return "Desktop application"
    if any(k in text for k in ("mobile", "app")):
        return "Mobile application"
    return "Cross-platform"


def infer_security_requirements(scope: UserScope) -> tuple[str, ...]:
    base = ("Data protection", "User privacy")
    extra = {
        UserScope.PERSONAL: ("Local data processing", "User keeps full control"),
        UserScope.TEAM: ("Secure team data sharing", "Access control"),
        UserScope.PUBLIC: (
            "Large-scale user data protection",
            "Regulatory compliance",
            "Abuse protection",
        ),
    }[scope]
    return base + extra


def infer_business_value(record: FactsRecord) -> str:
    pain = record.pain_point.lower()
    if not _informative(record.pain_point):
        return "Better user experience and efficiency"
    if any(k in pain for k in ("manual", "tedious", "手动", "麻烦")):
        return "Automates repetitive work and saves time"
    if any(k in pain for k in ("scattered", "can't find", "分散", "找不到")):
        return "Keeps everything in one place and easy to find"
    if any(k in pain for k in ("collaborat", "communicat", "协作", "沟通")):
        return "Smoother collaboration and team efficiency"
    return f"Solves the user's pain point through: {record.core_goal}"


def success_metrics(scope: UserScope, level: TechnicalLevel) -> tuple[str, ...]:
    metrics = {
        UserScope.PERSONAL: ["Satisfaction > 4.5/5", "Used as often as expected", "Time saved > 50%"],
        UserScope.TEAM: ["Team adoption > 80%", "Collaboration efficiency +30%", "Satisfaction > 4.0/5"],
        UserScope.PUBLIC: ["Monthly active users +20%", "Retention > 60%", "Task completion > 85%"],
    }[scope]
    if level is TechnicalLevel.SIMPLE:
        return (*metrics, "Stability > 99%")
    return (*metrics, "Stability > 99.5%", "Response time < 2s")


# =============================================================================
# Builder
# =============================================================================


def build(
    confirmed_record: FactsRecord,
    contextual_info: ContextualInfo | dict[str, Any] | None = None,
) -> FactsDigest:
    """Project a confirmed record and caller context into a frozen digest."""
    context = (
        contextual_info
        if isinstance(contextual_info, ContextualInfo)
        else ContextualInfo.model_validate(contextual_info or {})
    )
    record = confirmed_record
    level = assess_technical_level(record)
    features = tuple(f for f in record.core_features if _informative(f))

    digest = FactsDigest(
        product_definition=ProductDefinition(
            type=record.product_type,
            core_goal=record.core_goal,
            target_users=record.target_users,
            user_scope=record.user_scope,
            problem_statement=problem_statement(record),
        ),
        functional_requirements=FunctionalRequirements(
            core_features=tuple(record.core_features),
            use_scenarios=_texts(record.use_scenario),
            user_journey=record.user_journey,
            journey_outline=journey_outline(features),
            input_output=record.input_output,
            data_entities=infer_data_entities(features),
            user_roles=infer_user_roles(record.user_scope),
        ),
        constraints=Constraints(
            technical_level=level,
            key_limitations=infer_key_limitations(record, level),
            platform_preference=infer_platform_preference(record.technical_hints),
            performance_requirements=record.performance_requirements,
            security_requirements=infer_security_requirements(record.user_scope),
            technical_hints=tuple(record.technical_hints),
            integration_needs=tuple(record.integration_needs),
        ),
        contextual_info=DigestContext(
            pain_points=_texts(record.pain_point),
            current_solutions=_texts(record.current_solution),
            business_value=infer_business_value(record),
            success_metrics=success_metrics(record.user_scope, level),
            data_handling=context.data_handling,
            original_user_input=context.original_user_input,
            conversation_turns=context.conversation_turns,
        ),
    )
    logger.info(f"Built facts digest ({len(features)} features, level={level.value})")
    return digest
