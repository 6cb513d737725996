"""Core elicitation components.

Each module is usable on its own:
    extractor     - FactExtractor (conversation -> FactsRecord)
    completeness  - tiered CompletenessScore
    policy        - continue/proceed decisions
    questions     - question bank and answer intents
    confirmation  - ConfirmationMachine over immutable snapshots
    digest        - FactsDigest projection of a confirmed record
    quality       - QualityReport for generated documents
"""

from .completeness import CompletenessScore, evaluate, missing_fields
from .confirmation import (
    Adjustment,
    AdjustmentOp,
    ConfirmationMachine,
    ConfirmationPhase,
    ConfirmationState,
    RequirementSummary,
    ValidationResult,
)
from .digest import ContextualInfo, FactsDigest, build
from .extractor import FactExtractor
from .models import ExtractionDegraded, ExtractionResult, FactsRecord, QuestioningTurn
from .policy import PolicyAction, PolicyDecision, SessionContext, decide
from .quality import QualityReport, StructuredDocument, assess
from .questions import Question, get_next_question

__all__ = [
    # Data model
    "FactsRecord",
    "QuestioningTurn",
    "ExtractionResult",
    "ExtractionDegraded",
    # Extraction and scoring
    "FactExtractor",
    "CompletenessScore",
    "evaluate",
    "missing_fields",
    # Questioning
    "PolicyAction",
    "PolicyDecision",
    "SessionContext",
    "decide",
    "Question",
    "get_next_question",
    # Confirmation
    "Adjustment",
    "AdjustmentOp",
    "ConfirmationMachine",
    "ConfirmationPhase",
    "ConfirmationState",
    "RequirementSummary",
    "ValidationResult",
    # Downstream
    "ContextualInfo",
    "FactsDigest",
    "build",
    "QualityReport",
    "StructuredDocument",
    "assess",
]
