"""Multi-tier completeness scoring of a FactsRecord.

Scores are derived on demand and never stored. Overall is always the fixed
weighted sum of the three tier scores.
"""

import logging
from dataclasses import dataclass

from elicitor.config import (
    FALLBACK_COMPLETENESS,
    MIN_PRESENT_LENGTH,
    TIER_FIELDS,
    TIER_WEIGHTS,
    FallbackCompleteness,
    Tier,
)
from elicitor.elicitation.models import FactsRecord, is_placeholder

logger = logging.getLogger(__name__)


def is_present(value: str | list[str]) -> bool:
    """Presence test shared by scoring and summary validation.

    A string is present when its stripped length exceeds MIN_PRESENT_LENGTH
    and it is not a placeholder. A list is present when it holds at least
    one non-empty, non-placeholder element.
    """
    if isinstance(value, (list, tuple)):
        return any(item.strip() and not is_placeholder(item) for item in value)
    text = value.strip()
    return len(text) > MIN_PRESENT_LENGTH and not is_placeholder(text)


@dataclass(frozen=True)
class CompletenessScore:
    """Per-tier completeness in [0, 1] with a derived overall figure."""

    critical: float
    important: float
    optional: float

    @property
    def overall(self) -> float:
        return (
            TIER_WEIGHTS[Tier.CRITICAL] * self.critical
            + TIER_WEIGHTS[Tier.IMPORTANT] * self.important
            + TIER_WEIGHTS[Tier.OPTIONAL] * self.optional
        )

    def tier(self, tier: Tier) -> float:
        """Score of a single tier."""
        return getattr(self, tier.value)

    def lowest_tier(self) -> Tier:
        """Lowest-scoring tier; ties go to the higher-priority tier."""
        return min(Tier, key=lambda t: (self.tier(t), list(Tier).index(t)))

    def to_dict(self) -> dict[str, float]:
        return {
            "critical": self.critical,
            "important": self.important,
            "optional": self.optional,
            "overall": self.overall,
        }

    @classmethod
    def fallback(cls, defaults: FallbackCompleteness = FALLBACK_COMPLETENESS) -> "CompletenessScore":
        """Score reported when a record cannot be evaluated."""
        return cls(critical=defaults.critical, important=defaults.important, optional=defaults.optional)


def missing_fields(record: FactsRecord, tier: Tier | None = None) -> list[str]:
    """Names of fields failing the presence test, in tier order."""
    tiers = [tier] if tier is not None else list(Tier)
    return [
        name
        for t in tiers
        for name in TIER_FIELDS[t]
        if not is_present(getattr(record, name))
    ]


def _tier_score(record: FactsRecord, tier: Tier) -> float:
    names = TIER_FIELDS[tier]
    present = sum(1 for name in names if is_present(getattr(record, name)))
    return present / len(names)


def evaluate(record: FactsRecord) -> CompletenessScore:
    """Score a record across the critical, important and optional tiers."""
    score = CompletenessScore(
        critical=_tier_score(record, Tier.CRITICAL),
        important=_tier_score(record, Tier.IMPORTANT),
        optional=_tier_score(record, Tier.OPTIONAL),
    )
    logger.debug(f"Completeness: {score.to_dict()}")
    return score
