"""Centralized configuration for the elicitation engine.

Single source of truth for thresholds, weights and agent settings so the
scoring and questioning rules are not scattered across modules.

Design Principles:
- Scoring weights and thresholds in one place
- Agent configurations defined declaratively
- Enums for type-safe category and phase values
- Environment overrides read with os.getenv (loaded via python-dotenv at entry points)
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# =============================================================================
# Enums for Type Safety
# =============================================================================


class UserScope(str, Enum):
    """Who the product is built for."""

    PERSONAL = "personal"
    TEAM = "team"
    PUBLIC = "public"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid scope values as strings."""
        return [scope.value for scope in cls]


class QuestionCategory(str, Enum):
    """Topic a questioning round asks about."""

    PAINPOINT = "painpoint"
    FUNCTIONAL = "functional"
    DATA = "data"
    INTERFACE = "interface"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid category values as strings."""
        return [category.value for category in cls]


class Tier(str, Enum):
    """Priority bucket of FactsRecord fields."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    OPTIONAL = "optional"


class TechnicalLevel(str, Enum):
    """Estimated implementation complexity of the described product."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class ModelTier(Enum):
    """Model tier for cost/quality routing."""

    HEAVY = "heavy"  # Capable model for synthesis
    LIGHT = "light"  # Cheaper model for extraction


# =============================================================================
# Questioning Limits
# =============================================================================

# Hard cap on questioning rounds per session
MAX_ROUNDS = int(os.getenv("ELICITOR_MAX_ROUNDS", "8"))

# Ceiling on total questions, including follow-ups inside a round
MAX_QUESTIONS = 15

# Category order used to break ties when two categories score equally
CATEGORY_PRIORITY: tuple[QuestionCategory, ...] = (
    QuestionCategory.FUNCTIONAL,
    QuestionCategory.PAINPOINT,
    QuestionCategory.DATA,
    QuestionCategory.INTERFACE,
)

# Which completeness tier each category fills
CATEGORY_TIERS: dict[QuestionCategory, Tier] = {
    QuestionCategory.FUNCTIONAL: Tier.CRITICAL,
    QuestionCategory.PAINPOINT: Tier.IMPORTANT,
    QuestionCategory.DATA: Tier.IMPORTANT,
    QuestionCategory.INTERFACE: Tier.OPTIONAL,
}


# =============================================================================
# Completeness Scoring
# =============================================================================

# A string field counts as present when its stripped length exceeds this
MIN_PRESENT_LENGTH = 1

# Field membership per tier (snake_case attribute names on FactsRecord)
TIER_FIELDS: dict[Tier, tuple[str, ...]] = {
    Tier.CRITICAL: ("core_goal", "target_users", "core_features"),
    Tier.IMPORTANT: ("use_scenario", "pain_point", "input_output"),
    Tier.OPTIONAL: (
        "current_solution",
        "technical_hints",
        "integration_needs",
        "performance_requirements",
        "user_journey",
    ),
}

TIER_WEIGHTS: dict[Tier, float] = {
    Tier.CRITICAL: 0.5,
    Tier.IMPORTANT: 0.3,
    Tier.OPTIONAL: 0.2,
}

PROCEED_CRITICAL_THRESHOLD = 1.0
PROCEED_OVERALL_THRESHOLD = 0.75


@dataclass(frozen=True)
class FallbackCompleteness:
    """Tier scores reported when completeness cannot be evaluated.

    These are heuristics, not derived values. Overall is still computed
    from the tier weights.
    """

    critical: float = 0.6
    important: float = 0.4
    optional: float = 0.2

    def to_dict(self) -> dict[str, float]:
        """Convert to dict keyed by tier name."""
        return {
            Tier.CRITICAL.value: self.critical,
            Tier.IMPORTANT.value: self.important,
            Tier.OPTIONAL.value: self.optional,
        }


FALLBACK_COMPLETENESS = FallbackCompleteness()


# =============================================================================
# Extraction
# =============================================================================

# Degraded extraction keeps this many characters of the latest input as the goal
DEGRADED_GOAL_LENGTH = 50

# Summary truncates the core goal to this many characters
SUMMARY_GOAL_LENGTH = 30

# Number of leading features marked essential in the summary
ESSENTIAL_FEATURE_COUNT = 3

# Summary validation passes at or above this score
SUMMARY_VALID_THRESHOLD = 0.7


# =============================================================================
# Document Quality Scoring
# =============================================================================

QUALITY_WEIGHTS: dict[str, float] = {
    "completeness": 0.25,
    "clarity": 0.20,
    "specificity": 0.15,
    "feasibility": 0.15,
    "visual_quality": 0.10,
    "ai_coding_readiness": 0.15,
}


# =============================================================================
# Timeout Configuration
# =============================================================================


@dataclass(frozen=True)
class TimeoutConfig:
    """Timeout configuration for model calls."""

    read_timeout: float
    connect_timeout: float
    streaming: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for function kwargs."""
        return {
            "read_timeout": self.read_timeout,
            "connect_timeout": self.connect_timeout,
            "streaming": self.streaming,
        }


# Extraction is a short call; keep it well under the host's request budget
TIMEOUT_EXTRACTION = TimeoutConfig(read_timeout=60.0, connect_timeout=10.0, streaming=False)

TOKENS_EXTRACTION = 2000


# =============================================================================
# Agent Configuration
# =============================================================================

FACT_EXTRACTOR_PROMPT = """\
You extract product requirements from a conversation with a non-technical user.

Read the whole conversation and the latest answer, then reply with ONE JSON
object and nothing else. Use these keys:

  productType, coreGoal, targetUsers, userScope (personal | team | public),
  coreFeatures (list of short strings), useScenario, userJourney, inputOutput,
  painPoint, currentSolution, technicalHints (list), integrationNeeds (list),
  performanceRequirements

Use an empty string or empty list for anything the user has not said.
Do not invent features the user did not describe.
"""


@dataclass
class AgentConfig:
    """Configuration for an extraction agent.

    Attributes:
        name: Agent name (used for logging and identification)
        max_tokens: Maximum tokens for response generation
        timeout_config: Timeout configuration to use
        model_tier: Tier used to resolve the model id
        streaming: Whether to enable streaming (overrides timeout_config if set)
        system_prompt: Inline system prompt
    """

    name: str
    system_prompt: str
    max_tokens: int = TOKENS_EXTRACTION
    timeout_config: TimeoutConfig = field(default_factory=lambda: TIMEOUT_EXTRACTION)
    model_tier: ModelTier = ModelTier.LIGHT
    streaming: bool | None = None


AGENT_CONFIGS: dict[str, AgentConfig] = {
    "fact_extractor": AgentConfig(
        name="fact_extractor_agent",
        system_prompt=FACT_EXTRACTOR_PROMPT,
        model_tier=ModelTier.LIGHT,
    ),
}
