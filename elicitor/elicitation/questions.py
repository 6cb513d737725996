"""Question bank for the questioning rounds.

Questions are picked deterministically from the category chosen by the
policy, the product kind inferred from the record and the user scope.
Every multiple-choice question ends with a custom option so the user can
always answer in their own words.
"""

import logging
import re
from collections.abc import Collection
from dataclasses import dataclass, field
from enum import Enum

from elicitor.config import QuestionCategory, UserScope
from elicitor.elicitation.completeness import is_present
from elicitor.elicitation.models import FactsRecord

logger = logging.getLogger(__name__)

CUSTOM_OPTION_ID = "custom"
CUSTOM_OPTION_TEXT = "Let me describe it"


@dataclass(frozen=True)
class QuestionOption:
    id: str
    text: str


@dataclass(frozen=True)
class Question:
    """One question presented to the user."""

    id: str
    category: QuestionCategory
    text: str
    options: tuple[QuestionOption, ...] = ()
    allow_custom: bool = True

    @property
    def choices(self) -> tuple[QuestionOption, ...]:
        """Options as shown to the user, custom option last."""
        if not self.allow_custom:
            return self.options
        return self.options + (QuestionOption(CUSTOM_OPTION_ID, CUSTOM_OPTION_TEXT),)

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        """Inverse of to_dict; the custom option is re-added by ``choices``."""
        options = tuple(
            QuestionOption(o["id"], o["text"])
            for o in data.get("options", [])
            if o["id"] != CUSTOM_OPTION_ID
        )
        return cls(
            id=data["id"],
            category=QuestionCategory(data["category"]),
            text=data["text"],
            options=options,
            allow_custom=data.get("allowCustom", True),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category.value,
            "text": self.text,
            "options": [{"id": o.id, "text": o.text} for o in self.choices],
            "allowCustom": self.allow_custom,
        }


def _options(*pairs: tuple[str, str]) -> tuple[QuestionOption, ...]:
    return tuple(QuestionOption(option_id, text) for option_id, text in pairs)


# =============================================================================
# Bank
# =============================================================================


class ProductKind(str, Enum):
    BROWSER_EXTENSION = "browser_extension"
    MANAGEMENT_TOOL = "management_tool"
    WEB_APP = "web_app"
    GENERIC = "generic"


_KIND_KEYWORDS: tuple[tuple[tuple[str, ...], ProductKind], ...] = (
    (("extension", "plugin", "插件"), ProductKind.BROWSER_EXTENSION),
    (("management", "manage", "管理"), ProductKind.MANAGEMENT_TOOL),
    (("web", "website", "app", "网站", "应用"), ProductKind.WEB_APP),
)


def infer_product_kind(record: FactsRecord) -> ProductKind:
    text = record.product_type.lower()
    for keywords, kind in _KIND_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return kind
    return ProductKind.GENERIC


_GENERIC_BANK: dict[QuestionCategory, tuple[Question, ...]] = {
    QuestionCategory.FUNCTIONAL: (
        Question(
            id="functional_core",
            category=QuestionCategory.FUNCTIONAL,
            text="What is the one thing this product must do for you?",
        ),
        Question(
            id="functional_workflow",
            category=QuestionCategory.FUNCTIONAL,
            text="Can you walk through how you would use it, step by step?",
        ),
    ),
    QuestionCategory.PAINPOINT: (
        Question(
            id="painpoint_current",
            category=QuestionCategory.PAINPOINT,
            text="How do you handle this today, and what bothers you about it?",
            options=_options(
                ("manual", "I do it by hand and it takes too long"),
                ("scattered", "Information is scattered across tools"),
                ("error_prone", "It is easy to make mistakes"),
            ),
        ),
        Question(
            id="painpoint_frequency",
            category=QuestionCategory.PAINPOINT,
            text="How often would you use this tool?",
            options=_options(
                ("daily", "Every day"),
                ("weekly", "A few times a week"),
                ("occasional", "Occasionally"),
            ),
        ),
    ),
    QuestionCategory.DATA: (
        Question(
            id="data_input_output",
            category=QuestionCategory.DATA,
            text="What do you put in, and what do you expect to get out?",
        ),
        Question(
            id="data_storage",
            category=QuestionCategory.DATA,
            text="Does anything need to be saved between uses?",
            options=_options(
                ("no_save", "No, start fresh every time"),
                ("basic_save", "Save basic settings"),
                ("full_history", "Keep a full usage history"),
            ),
        ),
    ),
    QuestionCategory.INTERFACE: (
        Question(
            id="interface_platform",
            category=QuestionCategory.INTERFACE,
            text="Where would you like to use it?",
            options=_options(
                ("browser", "In the web browser"),
                ("desktop", "As a desktop program"),
                ("mobile", "On my phone"),
            ),
        ),
        Question(
            id="interface_integrations",
            category=QuestionCategory.INTERFACE,
            text="Does it need to work with any tools or services you already use?",
        ),
    ),
}

_KIND_BANK: dict[ProductKind, dict[QuestionCategory, tuple[Question, ...]]] = {
    ProductKind.BROWSER_EXTENSION: {
        QuestionCategory.FUNCTIONAL: (
            Question(
                id="extension_trigger",
                category=QuestionCategory.FUNCTIONAL,
                text="When should the extension start working?",
                options=_options(
                    ("auto_page", "Automatically on specific pages"),
                    ("click_icon", "When I click the extension icon"),
                    ("right_click", "When I select content and right-click"),
                    ("background", "Continuously in the background"),
                ),
            ),
        ),
        QuestionCategory.DATA: (
            Question(
                id="extension_data_handling",
                category=QuestionCategory.DATA,
                text="Does the data it handles need to be saved?",
                options=_options(
                    ("no_save", "No, use it directly"),
                    ("local_file", "Save to a local file"),
                    ("local_storage", "Keep settings and history"),
                    ("cloud_sync", "Sync to the cloud"),
                ),
            ),
        ),
    },
    ProductKind.WEB_APP: {
        QuestionCategory.DATA: (
            Question(
                id="web_app_content",
                category=QuestionCategory.DATA,
                text="Will users create or manage content in the app?",
                options=_options(
                    ("no_content", "No, they only use its features"),
                    ("simple_content", "Simple content creation"),
                    ("rich_content", "Full content management"),
                ),
            ),
        ),
    },
    ProductKind.MANAGEMENT_TOOL: {
        QuestionCategory.FUNCTIONAL: (
            Question(
                id="management_workflow",
                category=QuestionCategory.FUNCTIONAL,
                text="What does a typical management flow look like, from start to finish?",
            ),
        ),
    },
}

_SCOPE_BANK: dict[UserScope, dict[QuestionCategory, tuple[Question, ...]]] = {
    UserScope.PERSONAL: {
        QuestionCategory.INTERFACE: (
            Question(
                id="personal_settings",
                category=QuestionCategory.INTERFACE,
                text="Should it remember your preferences between sessions?",
                options=_options(("yes", "Yes"), ("no", "No")),
            ),
        ),
    },
    UserScope.TEAM: {
        QuestionCategory.PAINPOINT: (
            Question(
                id="team_size",
                category=QuestionCategory.PAINPOINT,
                text="How many people would use this tool?",
                options=_options(
                    ("small", "2 to 5 people"),
                    ("medium", "6 to 20 people"),
                    ("large", "A larger organization"),
                ),
            ),
        ),
    },
    UserScope.PUBLIC: {
        QuestionCategory.INTERFACE: (
            Question(
                id="public_audience_size",
                category=QuestionCategory.INTERFACE,
                text="How many people do you expect to use the product?",
                options=_options(
                    ("hundreds", "A few hundred"),
                    ("thousands", "A few thousand"),
                    ("more", "Tens of thousands or more"),
                    ("unknown", "Not sure yet"),
                ),
            ),
        ),
    },
}

_FOLLOW_UPS: dict[QuestionCategory, str] = {
    QuestionCategory.FUNCTIONAL: "Is there another feature you would want it to have?",
    QuestionCategory.PAINPOINT: "Is there anything else that frustrates you about the current way?",
    QuestionCategory.DATA: "Is there any other information it needs to handle?",
    QuestionCategory.INTERFACE: "Anything else about how or where you would use it?",
}


def candidate_questions(category: QuestionCategory, record: FactsRecord) -> tuple[Question, ...]:
    """Bank questions for a category in the order they would be asked."""
    kind = infer_product_kind(record)
    kind_questions = _KIND_BANK.get(kind, {}).get(category, ())
    scope_questions = _SCOPE_BANK.get(record.user_scope, {}).get(category, ())
    generic = _GENERIC_BANK[category]

    # Skip generic questions whose target field is already answered
    if category is QuestionCategory.FUNCTIONAL and is_present(record.user_journey):
        generic = tuple(q for q in generic if q.id != "functional_workflow")
    if category is QuestionCategory.DATA and is_present(record.input_output):
        generic = tuple(q for q in generic if q.id != "data_input_output")
    return kind_questions + scope_questions + generic


def get_next_question(
    category: QuestionCategory,
    record: FactsRecord,
    asked_ids: Collection[str] = (),
) -> Question:
    """Return the next unasked question for a category.

    When the bank for the category is exhausted a numbered follow-up is
    returned, so an id is never repeated within a session.
    """
    asked = set(asked_ids)
    for question in candidate_questions(category, record):
        if question.id not in asked:
            logger.debug(f"Selected question {question.id} for {category.value}")
            return question

    n = 1
    while f"{category.value}_followup_{n}" in asked:
        n += 1
    logger.debug(f"Question bank exhausted for {category.value}; follow-up {n}")
    return Question(
        id=f"{category.value}_followup_{n}",
        category=category,
        text=_FOLLOW_UPS[category],
    )


# =============================================================================
# Answer intent
# =============================================================================


class AnswerIntent(str, Enum):
    ANSWER = "answer"
    STOP = "stop"
    CONTINUE = "continue"


_STOP_RE = re.compile(
    r"\b(enough|that'?s all|generate|stop asking|no more questions|done)\b"
    r"|够了|足够了|可以了|开始生成|生成文档|直接生成|信息已经够了|不用再问"
)
_CONTINUE_RE = re.compile(r"\b(continue|more questions|keep going|ask more)\b|继续|再问")


@dataclass(frozen=True)
class IntentCheck:
    intent: AnswerIntent
    matched: str = field(default="")


def detect_intent(answer: str) -> IntentCheck:
    """Classify an answer as a stop request, a continue request or a plain answer.

    Continue requests are matched first so "continue, I haven't had enough"
    keeps the session going.
    """
    lowered = answer.strip().lower()
    match = _CONTINUE_RE.search(lowered)
    if match:
        return IntentCheck(AnswerIntent.CONTINUE, match.group(0))
    match = _STOP_RE.search(lowered)
    if match:
        return IntentCheck(AnswerIntent.STOP, match.group(0))
    return IntentCheck(AnswerIntent.ANSWER)
