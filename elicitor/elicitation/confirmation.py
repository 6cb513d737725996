"""Confirmation state machine over immutable snapshots.

Every action appends a new ConfirmationState to an arena keyed by sequence
number; earlier snapshots are never mutated. That gives audit (history)
and undo for free.

Transitions:
    SummaryGenerated -> Confirmed            (terminal)
    SummaryGenerated -> Adjusted -> SummaryGenerated
    any phase        -> RestartRequested     (terminal)
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from elicitor.config import (
    ESSENTIAL_FEATURE_COUNT,
    SUMMARY_GOAL_LENGTH,
    SUMMARY_VALID_THRESHOLD,
    TIER_FIELDS,
    TechnicalLevel,
    Tier,
    UserScope,
)
from elicitor.elicitation.completeness import is_present, missing_fields
from elicitor.elicitation.models import FactsRecord, is_placeholder
from elicitor.errors import InvalidAdjustment, InvalidTransition

logger = logging.getLogger(__name__)


class ConfirmationPhase(str, Enum):
    """Phase of a confirmation snapshot."""

    SUMMARY_GENERATED = "SummaryGenerated"
    CONFIRMED = "Confirmed"
    ADJUSTED = "Adjusted"
    RESTART_REQUESTED = "RestartRequested"

    @property
    def is_terminal(self) -> bool:
        return self in (ConfirmationPhase.CONFIRMED, ConfirmationPhase.RESTART_REQUESTED)


# =============================================================================
# Derived summary
# =============================================================================


class SummaryFeature(BaseModel):
    """One feature line of the summary."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    essential: bool
    source: str  # "user_input" or "inferred"


class RequirementSummary(BaseModel):
    """Human-reviewable rendering of a FactsRecord."""

    model_config = ConfigDict(frozen=True)

    project_name: str
    core_goal: str
    target_users: str
    main_features: tuple[SummaryFeature, ...]
    technical_level: TechnicalLevel
    key_constraints: tuple[str, ...]
    user_scope: UserScope

    def to_markdown(self) -> str:
        lines = [
            f"# {self.project_name}",
            "",
            f"**Goal:** {self.core_goal}",
            f"**Target users:** {self.target_users}",
            f"**Scope:** {self.user_scope.value}",
            f"**Technical level:** {self.technical_level.value}",
            "",
            "## Main Features",
        ]
        for feature in self.main_features:
            marker = " (essential)" if feature.essential else ""
            lines.append(f"- **{feature.name}**{marker}: {feature.description}")
        if self.key_constraints:
            lines.extend(["", "## Key Constraints"])
            lines.extend(f"- {constraint}" for constraint in self.key_constraints)
        return "\n".join(lines)


class ValidationResult(BaseModel):
    """Warnings shown to the user before they confirm."""

    model_config = ConfigDict(frozen=True)

    missing_fields: tuple[str, ...]
    issues: tuple[str, ...]
    suggestions: tuple[str, ...]
    score: float
    is_valid: bool

    def to_markdown(self) -> str:
        status = "ready to confirm" if self.is_valid else "needs attention"
        lines = [f"**Summary quality:** {self.score:.0%} ({status})"]
        if self.missing_fields:
            lines.append(f"**Still missing:** {', '.join(self.missing_fields)}")
        lines.extend(f"- Issue: {issue}" for issue in self.issues)
        lines.extend(f"- Suggestion: {suggestion}" for suggestion in self.suggestions)
        return "\n".join(lines)


def _informative(value: str) -> bool:
    return bool(value.strip()) and not is_placeholder(value)


def assess_technical_level(record: FactsRecord) -> TechnicalLevel:
    """Estimate complexity from feature, hint, integration and scope counts."""
    features = [f for f in record.core_features if _informative(f)]
    points = 0
    points += 2 if len(features) > 5 else 1 if len(features) > 2 else 0
    points += 2 if len(record.technical_hints) > 3 else 1 if len(record.technical_hints) > 1 else 0
    points += 2 if len(record.integration_needs) > 2 else 1 if record.integration_needs else 0
    points += {UserScope.PUBLIC: 2, UserScope.TEAM: 1}.get(record.user_scope, 0)

    if points >= 5:
        return TechnicalLevel.COMPLEX
    if points >= 2:
        return TechnicalLevel.MODERATE
    return TechnicalLevel.SIMPLE


def _key_constraints(record: FactsRecord) -> list[str]:
    constraints = []
    if _informative(record.performance_requirements):
        constraints.append(f"Performance: {record.performance_requirements}")
    constraints.extend(f"Integrates with {need}" for need in record.integration_needs if _informative(need))
    constraints.extend(f"Technology: {hint}" for hint in record.technical_hints if _informative(hint))
    if record.user_scope is UserScope.PERSONAL:
        constraints.append("Single user; no account or permission system")
    return constraints


def derive_summary(record: FactsRecord) -> RequirementSummary:
    """Render a record as a RequirementSummary. Deterministic."""
    features = [f for f in record.core_features if _informative(f)]
    main_features = [
        SummaryFeature(
            name=feature,
            description=feature,
            essential=index < ESSENTIAL_FEATURE_COUNT,
            source="user_input",
        )
        for index, feature in enumerate(features)
    ]
    if not main_features and _informative(record.core_goal):
        main_features.append(
            SummaryFeature(
                name="Core workflow",
                description=record.core_goal,
                essential=True,
                source="inferred",
            )
        )

    if _informative(record.product_type):
        project_name = record.product_type
    elif _informative(record.core_goal):
        project_name = record.core_goal[:20].strip()
    else:
        project_name = "Untitled product"

    return RequirementSummary(
        project_name=project_name,
        core_goal=record.core_goal[:SUMMARY_GOAL_LENGTH],
        target_users=record.target_users if _informative(record.target_users) else "Not specified",
        main_features=tuple(main_features),
        technical_level=assess_technical_level(record),
        key_constraints=tuple(_key_constraints(record)),
        user_scope=record.user_scope,
    )


def validate_summary(record: FactsRecord, summary: RequirementSummary) -> ValidationResult:
    """Score a summary and flag every field that fails the presence test."""
    score = 1.0
    issues: list[str] = []
    suggestions: list[str] = []

    for name in TIER_FIELDS[Tier.CRITICAL]:
        if not is_present(getattr(record, name)):
            score -= 0.2
            issues.append(f"Critical field '{name}' is missing")

    if len(summary.main_features) > 6:
        score -= 0.2
        issues.append("Too many features for a first version")
        suggestions.append("Keep the 3-5 most important features")

    if summary.technical_level is TechnicalLevel.SIMPLE and len(summary.main_features) > 4:
        score -= 0.3
        issues.append("Feature count does not match a simple product")
        suggestions.append("Simplify the feature set or revisit the technical level")

    goal = record.core_goal.lower()
    if len(record.core_goal) > SUMMARY_GOAL_LENGTH or "system" in goal or "platform" in goal:
        score -= 0.1
        suggestions.append("Describe the goal in one short, concrete sentence")

    name = summary.project_name.lower()
    if len(summary.project_name) > 10 or "system" in name:
        score -= 0.1
        suggestions.append("Use a shorter, more concrete project name")

    score = round(max(score, 0.0), 2)
    return ValidationResult(
        missing_fields=tuple(missing_fields(record)),
        issues=tuple(issues),
        suggestions=tuple(suggestions),
        score=score,
        is_valid=score >= SUMMARY_VALID_THRESHOLD,
    )


# =============================================================================
# Snapshots and adjustments
# =============================================================================


@dataclass(frozen=True)
class ConfirmationState:
    """Immutable snapshot produced by one confirmation action."""

    sequence: int
    phase: ConfirmationPhase
    summary: RequirementSummary
    validation: ValidationResult
    facts_record: FactsRecord


class AdjustmentOp(str, Enum):
    """How an adjustment changes its target field."""

    SET = "set"
    APPEND = "append"
    REMOVE = "remove"


@dataclass(frozen=True)
class Adjustment:
    """User-authored patch against one FactsRecord field.

    ``field_path`` accepts snake_case or camelCase names and an optional
    list index, e.g. ``coreFeatures[1]``.
    """

    field_path: str
    new_value: Any = None
    op: AdjustmentOp = AdjustmentOp.SET

    def __post_init__(self):
        try:
            object.__setattr__(self, "op", AdjustmentOp(self.op))
        except ValueError:
            raise InvalidAdjustment(
                f"Unknown adjustment op '{self.op}'", field_path=self.field_path
            ) from None


_PATH_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?:\[\s*(\d+)\s*\])?\s*$")


def _parse_path(field_path: str) -> tuple[str, int | None]:
    match = _PATH_RE.match(field_path or "")
    if not match:
        raise InvalidAdjustment(f"Malformed field path '{field_path}'", field_path=field_path)

    name = FactsRecord.resolve_field_name(match.group(1))
    if name is None:
        raise InvalidAdjustment(f"Unknown field path '{field_path}'", field_path=field_path)

    index = int(match.group(2)) if match.group(2) is not None else None
    return name, index


def _apply_one(data: dict[str, Any], adjustment: Adjustment) -> None:
    name, index = _parse_path(adjustment.field_path)
    current = data[name]
    is_list = isinstance(current, list)

    if not is_list and (index is not None or adjustment.op is not AdjustmentOp.SET):
        raise InvalidAdjustment(
            f"Field '{name}' is not a list; only plain set is allowed",
            field_path=adjustment.field_path,
        )

    if not is_list:
        data[name] = adjustment.new_value
        return

    items = list(current)
    if adjustment.op is AdjustmentOp.APPEND:
        values = adjustment.new_value if isinstance(adjustment.new_value, list) else [adjustment.new_value]
        items.extend(values)
    elif index is None:
        if adjustment.op is AdjustmentOp.REMOVE:
            raise InvalidAdjustment(
                f"Removing from '{name}' needs an index", field_path=adjustment.field_path
            )
        items = adjustment.new_value
    elif index >= len(items):
        raise InvalidAdjustment(
            f"Index {index} out of range for '{name}' ({len(items)} items)",
            field_path=adjustment.field_path,
        )
    elif adjustment.op is AdjustmentOp.REMOVE:
        del items[index]
    else:
        items[index] = adjustment.new_value
    data[name] = items


def apply_to_record(record: FactsRecord, adjustments: list[Adjustment]) -> FactsRecord:
    """Apply a batch of adjustments, all or nothing.

    Raises:
        InvalidAdjustment: If any path is unknown or the patched record is invalid.
    """
    data = record.model_dump()
    for adjustment in adjustments:
        _apply_one(data, adjustment)

    try:
        return FactsRecord.model_validate(data)
    except ValidationError as e:
        raise InvalidAdjustment(f"Adjusted record is invalid: {e.error_count()} errors") from e


class ConfirmationMachine:
    """Arena of ConfirmationState snapshots for one session."""

    def __init__(self):
        self._arena: dict[int, ConfirmationState] = {}
        self._next_sequence = 0
        # Sequence numbers of the SummaryGenerated snapshots undo can return to
        self._summary_line: list[int] = []

    @property
    def current(self) -> ConfirmationState | None:
        if not self._arena:
            return None
        return self._arena[self._next_sequence - 1]

    def get(self, sequence: int) -> ConfirmationState:
        return self._arena[sequence]

    def history(self) -> list[ConfirmationState]:
        """All snapshots in the order they were produced."""
        return [self._arena[seq] for seq in sorted(self._arena)]

    def _append(
        self,
        phase: ConfirmationPhase,
        record: FactsRecord,
        summary: RequirementSummary | None = None,
        validation: ValidationResult | None = None,
    ) -> ConfirmationState:
        if summary is None:
            summary = derive_summary(record)
        if validation is None:
            validation = validate_summary(record, summary)
        state = ConfirmationState(
            sequence=self._next_sequence,
            phase=phase,
            summary=summary,
            validation=validation,
            facts_record=record,
        )
        self._arena[state.sequence] = state
        self._next_sequence += 1
        logger.info(f"Confirmation snapshot {state.sequence}: {phase.value}")
        return state

    def _require_current(self, state: ConfirmationState, action: str) -> None:
        current = self.current
        if current is None or state != current:
            raise InvalidTransition(
                f"Cannot {action}: snapshot {state.sequence} has been superseded",
                phase=state.phase.value,
                action=action,
            )

    def generate_summary(self, record: FactsRecord) -> ConfirmationState:
        """Derive a summary and validation for a record.

        Raises:
            InvalidTransition: If the session has already been confirmed.
        """
        current = self.current
        if current is not None and current.phase is ConfirmationPhase.CONFIRMED:
            raise InvalidTransition(
                "Cannot regenerate a summary after confirmation",
                phase=current.phase.value,
                action="generate_summary",
            )
        state = self._append(ConfirmationPhase.SUMMARY_GENERATED, record)
        self._summary_line = [state.sequence]
        return state

    def apply_adjustments(
        self, state: ConfirmationState, adjustments: list[Adjustment]
    ) -> ConfirmationState:
        """Patch the record and re-summarize.

        Appends an Adjusted snapshot followed by a SummaryGenerated snapshot
        and returns the latter. Nothing is appended if any adjustment fails.

        Raises:
            InvalidAdjustment: If any adjustment is invalid.
            InvalidTransition: If the state is not the current SummaryGenerated snapshot.
        """
        if state.phase is not ConfirmationPhase.SUMMARY_GENERATED:
            raise InvalidTransition(
                f"Cannot adjust from phase {state.phase.value}",
                phase=state.phase.value,
                action="adjust",
            )
        self._require_current(state, "adjust")
        if not adjustments:
            raise InvalidAdjustment("Adjustment batch is empty")

        patched = apply_to_record(state.facts_record, adjustments)

        adjusted = self._append(ConfirmationPhase.ADJUSTED, patched)
        summarized = self._append(
            ConfirmationPhase.SUMMARY_GENERATED,
            patched,
            summary=adjusted.summary,
            validation=adjusted.validation,
        )
        self._summary_line.append(summarized.sequence)
        return summarized

    def confirm(self, state: ConfirmationState) -> ConfirmationState:
        """Accept the summary as final.

        Raises:
            InvalidTransition: Unless the state is the current SummaryGenerated snapshot.
        """
        if state.phase is not ConfirmationPhase.SUMMARY_GENERATED:
            raise InvalidTransition(
                f"Cannot confirm from phase {state.phase.value}",
                phase=state.phase.value,
                action="confirm",
            )
        self._require_current(state, "confirm")
        return self._append(
            ConfirmationPhase.CONFIRMED,
            state.facts_record,
            summary=state.summary,
            validation=state.validation,
        )

    def restart(self, state: ConfirmationState) -> ConfirmationState:
        """Request a fresh elicitation with an empty record. Legal from any phase."""
        self._summary_line = []
        return self._append(ConfirmationPhase.RESTART_REQUESTED, FactsRecord())

    def undo(self) -> ConfirmationState:
        """Return to the summary that preceded the most recent adjustment.

        The earlier snapshot is copied forward under a new sequence number.

        Raises:
            InvalidTransition: If there is no adjustment to undo or the
                session is already confirmed or restarted.
        """
        current = self.current
        if (
            current is None
            or current.phase is not ConfirmationPhase.SUMMARY_GENERATED
            or len(self._summary_line) < 2
        ):
            phase = current.phase.value if current else None
            raise InvalidTransition("Nothing to undo", phase=phase, action="undo")

        self._summary_line.pop()
        previous = self._arena[self._summary_line[-1]]
        restored = self._append(
            ConfirmationPhase.SUMMARY_GENERATED,
            previous.facts_record,
            summary=previous.summary,
            validation=previous.validation,
        )
        self._summary_line[-1] = restored.sequence
        return restored
