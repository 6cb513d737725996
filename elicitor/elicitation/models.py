"""Core data model of the elicitation engine.

FactsRecord is a frozen Pydantic model. Every round replaces it wholesale
rather than mutating it, so a record handed to a caller never changes
underneath them. Field names are snake_case in Python; the camelCase names
used by the text-understanding prompt are accepted as aliases.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from elicitor.config import QuestionCategory, UserScope
from elicitor.errors import InvalidInput

# Values that mean "nothing learned yet". Compared after strip().lower().
PLACEHOLDER_MARKERS = ("to be clarified", "待明确")
PLACEHOLDER_VALUES = frozenset({"", "unknown", "n/a", "na", "none", "tbd", "todo", "-"})


def placeholder(label: str) -> str:
    """Return the generic placeholder for a field label."""
    return f"{label} to be clarified"


def is_placeholder(value: str) -> bool:
    """True when a string carries no real information."""
    normalized = value.strip().lower()
    if normalized in PLACEHOLDER_VALUES:
        return True
    return any(marker in normalized for marker in PLACEHOLDER_MARKERS)


class FactsRecord(BaseModel):
    """Structured snapshot of everything learned about the product idea."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    product_type: str = ""
    core_goal: str = ""
    target_users: str = ""
    user_scope: UserScope = UserScope.PERSONAL
    core_features: list[str] = []
    use_scenario: str = ""
    user_journey: str = ""
    input_output: str = ""
    pain_point: str = ""
    current_solution: str = ""
    technical_hints: list[str] = []
    integration_needs: list[str] = []
    performance_requirements: str = ""

    @field_validator(
        "product_type",
        "core_goal",
        "target_users",
        "use_scenario",
        "user_journey",
        "input_output",
        "pain_point",
        "current_solution",
        "performance_requirements",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, list):
            return "; ".join(str(item).strip() for item in value if str(item).strip())
        return value

    @field_validator("core_features", "technical_hints", "integration_needs", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if item is not None and str(item).strip()]
        return value

    @field_validator("user_scope", mode="before")
    @classmethod
    def _normalize_scope(cls, value: Any) -> Any:
        if value is None or value == "":
            return UserScope.PERSONAL
        if isinstance(value, str):
            normalized = value.strip().lower()
            # Older clients send small_team for the team scope
            return "team" if normalized == "small_team" else normalized
        return value

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """All record field names in declaration order."""
        return tuple(cls.model_fields)

    @classmethod
    def resolve_field_name(cls, name: str) -> str | None:
        """Map a snake_case or camelCase field name to the attribute name."""
        if name in cls.model_fields:
            return name
        for field_name in cls.model_fields:
            if to_camel(field_name) == name:
                return field_name
        return None

    def to_dict(self, by_alias: bool = False) -> dict[str, Any]:
        """Plain JSON-compatible dict of the record."""
        return self.model_dump(mode="json", by_alias=by_alias)


class ExtractionOutcome(str, Enum):
    """Which branch produced a FactsRecord."""

    STRUCTURED = "structured"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class ExtractionDegraded:
    """Warning carried alongside a record produced by the heuristic fallback.

    Not an exception: the record is still valid and the round advances.
    """

    reason: str
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.reason}: {self.detail}" if self.detail else self.reason


@dataclass(frozen=True)
class ExtractionResult:
    """Tagged result of one extraction step."""

    outcome: ExtractionOutcome
    record: FactsRecord
    warning: ExtractionDegraded | None = None

    @property
    def degraded(self) -> bool:
        return self.outcome is ExtractionOutcome.DEGRADED

    @classmethod
    def structured(cls, record: FactsRecord) -> "ExtractionResult":
        return cls(outcome=ExtractionOutcome.STRUCTURED, record=record)

    @classmethod
    def from_fallback(cls, record: FactsRecord, warning: ExtractionDegraded) -> "ExtractionResult":
        return cls(outcome=ExtractionOutcome.DEGRADED, record=record, warning=warning)


@dataclass(frozen=True)
class QuestioningTurn:
    """One conversational exchange. Immutable once appended to a history."""

    question: str
    answer: str
    category: QuestionCategory
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuestioningTurn":
        """Build a turn from caller-supplied data.

        Raises:
            InvalidInput: If the category is not a known question category.
        """
        raw_category = str(data.get("category", "")).strip().lower()
        try:
            category = QuestionCategory(raw_category)
        except ValueError:
            raise InvalidInput(
                f"Unknown question category '{raw_category}'. "
                f"Valid categories: {', '.join(QuestionCategory.values())}"
            ) from None

        kwargs: dict[str, Any] = {
            "question": str(data.get("question") or "").strip(),
            "answer": str(data.get("answer") or "").strip(),
            "category": category,
        }
        if data.get("timestamp"):
            kwargs["timestamp"] = str(data["timestamp"])
        return cls(**kwargs)

    @property
    def is_empty(self) -> bool:
        return not self.question and not self.answer

    def to_messages(self) -> list[dict[str, str]]:
        """Role-tagged messages for this exchange."""
        messages = []
        if self.question:
            messages.append({"role": "assistant", "content": self.question})
        if self.answer:
            messages.append({"role": "user", "content": self.answer})
        return messages

    def to_dict(self) -> dict[str, str]:
        return {
            "question": self.question,
            "answer": self.answer,
            "category": self.category.value,
            "timestamp": self.timestamp,
        }


ConversationEntry = QuestioningTurn | dict[str, Any]


def normalize_history(history: list[ConversationEntry] | None) -> list[dict[str, str]]:
    """Flatten a conversation history into role-tagged messages.

    Accepts QuestioningTurns, turn dicts (question/answer/category) and
    role-tagged message dicts (role/content). Turns with neither a question
    nor an answer are dropped.

    Raises:
        InvalidInput: If an entry is neither a turn nor a role-tagged message.
    """
    messages: list[dict[str, str]] = []
    for entry in history or []:
        if isinstance(entry, QuestioningTurn):
            turn = entry
        elif isinstance(entry, dict) and "role" in entry:
            role = str(entry["role"]).strip().lower()
            if role not in ("user", "assistant"):
                raise InvalidInput(f"Unknown message role '{role}'")
            content = str(entry.get("content") or "").strip()
            if content:
                messages.append({"role": role, "content": content})
            continue
        elif isinstance(entry, dict) and ("question" in entry or "answer" in entry):
            turn = QuestioningTurn.from_dict(entry)
        else:
            raise InvalidInput(f"Unrecognized conversation entry: {entry!r}")

        if not turn.is_empty:
            messages.extend(turn.to_messages())
    return messages
