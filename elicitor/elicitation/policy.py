"""Questioning policy: ask another question or proceed to confirmation.

The policy is a pure function of the record, its score and an explicit
SessionContext. Round counters live in the context value, never in module
state, so sessions stay independent.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum

from elicitor.config import (
    CATEGORY_PRIORITY,
    CATEGORY_TIERS,
    MAX_ROUNDS,
    PROCEED_CRITICAL_THRESHOLD,
    PROCEED_OVERALL_THRESHOLD,
    QuestionCategory,
)
from elicitor.elicitation.completeness import CompletenessScore, missing_fields
from elicitor.elicitation.models import FactsRecord

logger = logging.getLogger(__name__)


class PolicyAction(str, Enum):
    """Outcome of a policy decision."""

    CONTINUE = "continue"
    PROCEED = "proceed_to_confirmation"


@dataclass(frozen=True)
class SessionContext:
    """Per-session counters passed into every policy decision."""

    rounds_taken: int = 0
    asked_categories: tuple[QuestionCategory, ...] = ()
    max_rounds: int = MAX_ROUNDS
    degraded: bool = False

    @property
    def last_category(self) -> QuestionCategory | None:
        return self.asked_categories[-1] if self.asked_categories else None

    def record_round(self, category: QuestionCategory | None, degraded: bool = False) -> "SessionContext":
        """Return the context after one more continue decision."""
        asked = self.asked_categories + ((category,) if category is not None else ())
        return replace(self, rounds_taken=self.rounds_taken + 1, asked_categories=asked, degraded=degraded)

    def with_degraded(self, degraded: bool) -> "SessionContext":
        return replace(self, degraded=degraded)


@dataclass(frozen=True)
class PolicyDecision:
    """What to do next, with a deterministic explanation."""

    action: PolicyAction
    reasoning: str
    next_category: QuestionCategory | None = None

    @property
    def should_continue(self) -> bool:
        return self.action is PolicyAction.CONTINUE


def _choose_category(score: CompletenessScore, last: QuestionCategory | None) -> QuestionCategory:
    candidates = [c for c in CATEGORY_PRIORITY if c != last] or list(CATEGORY_PRIORITY)
    return min(
        candidates,
        key=lambda c: (score.tier(CATEGORY_TIERS[c]), CATEGORY_PRIORITY.index(c)),
    )


def decide(record: FactsRecord, score: CompletenessScore, context: SessionContext) -> PolicyDecision:
    """Decide whether to keep questioning.

    Proceeds when the critical tier is complete and overall reaches the
    threshold, or unconditionally once the round cap is reached. Otherwise
    picks the category whose tier scores lowest, skipping the category asked
    in the previous round.
    """
    lowest = score.lowest_tier()
    suffix = " (degraded extraction)" if context.degraded else ""

    if context.rounds_taken >= context.max_rounds:
        decision = PolicyDecision(
            action=PolicyAction.PROCEED,
            reasoning=(
                f"Round limit reached ({context.rounds_taken}/{context.max_rounds}); "
                f"lowest tier {lowest.value} at {score.tier(lowest):.2f}{suffix}"
            ),
        )
    elif score.critical >= PROCEED_CRITICAL_THRESHOLD and score.overall >= PROCEED_OVERALL_THRESHOLD:
        decision = PolicyDecision(
            action=PolicyAction.PROCEED,
            reasoning=(
                f"Critical facts complete and overall {score.overall:.2f} >= "
                f"{PROCEED_OVERALL_THRESHOLD:.2f}; lowest tier {lowest.value} "
                f"at {score.tier(lowest):.2f}{suffix}"
            ),
        )
    else:
        category = _choose_category(score, context.last_category)
        tier = CATEGORY_TIERS[category]
        gaps = missing_fields(record, tier)
        gap_text = f"; missing {', '.join(gaps)}" if gaps else ""
        decision = PolicyDecision(
            action=PolicyAction.CONTINUE,
            next_category=category,
            reasoning=(
                f"Lowest tier {tier.value} at {score.tier(tier):.2f}{gap_text}; "
                f"asking {category.value}{suffix}"
            ),
        )

    logger.info(
        f"Policy decision: {decision.action.value} "
        f"(round {context.rounds_taken}/{context.max_rounds}) - {decision.reasoning}"
    )
    return decision
