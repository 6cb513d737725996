"""Fact extraction from free-text answers.

One extraction step makes at most one call to the text-understanding
service. Its reply is parsed into a FactsRecord. Anything that goes wrong
on that path (service unreachable, empty reply, no JSON, invalid fields)
lands on the degraded branch: a deterministic keyword heuristic that
always yields a complete record. Both branches return an ExtractionResult
tagged with the branch taken; nothing is raised except for invalid input.
"""

import json
import logging
import re

from pydantic import ValidationError

from elicitor.agents.output_utils import extract_json_from_text
from elicitor.config import DEGRADED_GOAL_LENGTH, UserScope
from elicitor.elicitation.completeness import is_present
from elicitor.elicitation.models import (
    ConversationEntry,
    ExtractionDegraded,
    ExtractionResult,
    FactsRecord,
    is_placeholder,
    normalize_history,
    placeholder,
)
from elicitor.elicitation.text_service import TextUnderstandingService
from elicitor.errors import InvalidInput, UpstreamUnavailable

logger = logging.getLogger(__name__)

# =============================================================================
# Keyword tables for the degraded heuristic
# =============================================================================

_PRODUCT_TYPE_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("extension", "plugin", "插件"), "Browser extension"),
    (("website", "web", "网站"), "Web application"),
    (("manage", "system", "管理"), "Management tool"),
    (("tool", "工具"), "Productivity tool"),
)

_FEATURE_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("extract", "scrape", "提取", "抓取"), "Automatic extraction"),
    (("save", "store", "保存", "存储"), "Data saving"),
    (("manage", "organize", "管理", "整理"), "Data management"),
    (("analy", "statistic", "report", "分析", "统计"), "Data analysis"),
)

_PAIN_POINT_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("tedious", "hard", "annoying", "麻烦", "困难"), "Manual work is tedious and inefficient"),
    (("time", "slow", "时间", "慢"), "Takes too long and needs to be faster"),
)

_HINT_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("plugin", "browser", "插件", "浏览器"), "Browser extension"),
    (("web page", "website", "网页", "网站"), "Web technology"),
    (("automat", "smart", "自动", "智能"), "Automation"),
)

_TEAM_KEYWORDS = ("team", "company", "colleague", "团队", "公司")
_PERSONAL_RE = re.compile(r"\b(i|me|my|myself|personal)\b|个人|我")
_END_USER_KEYWORDS = ("customer", "client", "用户", "客户")


def _first_match(text: str, table: tuple[tuple[tuple[str, ...], str], ...]) -> str | None:
    for keywords, value in table:
        if any(keyword in text for keyword in keywords):
            return value
    return None


def _all_matches(text: str, table: tuple[tuple[tuple[str, ...], str], ...]) -> list[str]:
    return [value for keywords, value in table if any(keyword in text for keyword in keywords)]


def degraded_record(text: str) -> FactsRecord:
    """Build a complete, low-fidelity record from raw text alone.

    Never fails. Fields without keyword evidence get generic placeholders
    and the scope defaults to personal.
    """
    raw = text.strip()
    lowered = raw.lower()

    if _PERSONAL_RE.search(lowered):
        target_users = "Individual users"
    elif any(keyword in lowered for keyword in _TEAM_KEYWORDS):
        target_users = "Team members"
    elif any(keyword in lowered for keyword in _END_USER_KEYWORDS):
        target_users = "End users"
    else:
        target_users = placeholder("Target users")

    # Team wins only when there is no first-person evidence
    if not _PERSONAL_RE.search(lowered) and any(k in lowered for k in _TEAM_KEYWORDS):
        user_scope = UserScope.TEAM
    else:
        user_scope = UserScope.PERSONAL

    return FactsRecord(
        product_type=_first_match(lowered, _PRODUCT_TYPE_KEYWORDS) or placeholder("Product type"),
        core_goal=raw[:DEGRADED_GOAL_LENGTH],
        target_users=target_users,
        user_scope=user_scope,
        core_features=_all_matches(lowered, _FEATURE_KEYWORDS) or [placeholder("Core features")],
        use_scenario=placeholder("Use scenario"),
        user_journey=placeholder("User journey"),
        input_output=placeholder("Input and output"),
        pain_point=_first_match(lowered, _PAIN_POINT_KEYWORDS) or placeholder("Pain point"),
        current_solution=placeholder("Current solution"),
        technical_hints=_all_matches(lowered, _HINT_KEYWORDS),
        integration_needs=[],
        performance_requirements=placeholder("Performance requirements"),
    )


# =============================================================================
# Merge policy
# =============================================================================


def _merge_text(old: str, new: str) -> str:
    if new and not is_placeholder(new):
        return new
    if old and not is_placeholder(old):
        return old
    return new or old


def _merge_list(old: list[str], new: list[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for item in [*old, *new]:
        key = item.strip().casefold()
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(item.strip())

    informative = [item for item in merged if not is_placeholder(item)]
    return informative or merged


def merge_records(prior: FactsRecord | None, new: FactsRecord, structured: bool = True) -> FactsRecord:
    """Fold new evidence into a prior record, returning a new record.

    Non-placeholder values overwrite, placeholders never replace real values,
    and list fields are unioned in order with case-insensitive de-duplication.
    Only structured evidence may change an established user scope.
    A degraded record only fills fields whose prior value is not yet present.
    """
    if prior is None:
        return new

    updates = {}
    for name in FactsRecord.field_names():
        old_value = getattr(prior, name)
        new_value = getattr(new, name)
        if name == "user_scope":
            updates[name] = new_value if structured else old_value
        elif not structured and is_present(old_value):
            updates[name] = old_value
        elif isinstance(old_value, list):
            updates[name] = _merge_list(old_value, new_value)
        else:
            updates[name] = _merge_text(old_value, new_value)

    return FactsRecord.model_validate(updates)


# =============================================================================
# Extractor
# =============================================================================


class FactExtractor:
    """Turns conversation plus the latest answer into a FactsRecord.

    Args:
        service: Text-understanding collaborator. When None, every step
            takes the degraded branch.
    """

    def __init__(self, service: TextUnderstandingService | None = None):
        self.service = service

    def extract(
        self,
        conversation_history: list[ConversationEntry] | None,
        latest_user_text: str,
        prior_record: FactsRecord | None = None,
    ) -> ExtractionResult:
        """Extract facts from one user turn.

        Args:
            conversation_history: Prior turns or role-tagged messages
            latest_user_text: The newest user answer; may be empty only when
                the history is not
            prior_record: Record accumulated so far, merged with new evidence

        Returns:
            ExtractionResult tagged STRUCTURED or DEGRADED

        Raises:
            InvalidInput: If there is neither latest text nor history.
        """
        latest_user_text = (latest_user_text or "").strip()
        messages = normalize_history(conversation_history)
        if not latest_user_text and not messages:
            raise InvalidInput("latest_user_text may be empty only when conversation history exists")

        if self.service is None:
            return self._degrade(messages, latest_user_text, prior_record, "no_service")

        prompt_messages = self._build_prompt(messages, latest_user_text, prior_record)
        try:
            reply = self.service.complete(prompt_messages)
        except UpstreamUnavailable as e:
            logger.warning(f"Text-understanding service unavailable, degrading: {e}")
            return self._degrade(messages, latest_user_text, prior_record, "upstream_unavailable", str(e))
        except Exception as e:
            logger.error(f"Text-understanding service failed: {e}", exc_info=True)
            return self._degrade(messages, latest_user_text, prior_record, "service_error", str(e))

        data = extract_json_from_text(reply or "")
        if data is None:
            logger.warning(f"No JSON object in extraction reply ({len(reply or '')} chars)")
            return self._degrade(messages, latest_user_text, prior_record, "unparseable_output")

        try:
            extracted = FactsRecord.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Extraction reply failed validation: {e.error_count()} errors")
            return self._degrade(
                messages, latest_user_text, prior_record, "malformed_output", str(e)
            )

        merged = merge_records(prior_record, extracted, structured=True)
        logger.debug(f"Structured extraction merged {len(data)} keys")
        return ExtractionResult.structured(merged)

    def _degrade(
        self,
        messages: list[dict[str, str]],
        latest_user_text: str,
        prior_record: FactsRecord | None,
        reason: str,
        detail: str = "",
    ) -> ExtractionResult:
        source = latest_user_text or self._last_user_text(messages)
        heuristic = degraded_record(source)
        merged = merge_records(prior_record, heuristic, structured=False)
        logger.info(f"Degraded extraction used (reason={reason})")
        return ExtractionResult.from_fallback(merged, ExtractionDegraded(reason=reason, detail=detail))

    @staticmethod
    def _last_user_text(messages: list[dict[str, str]]) -> str:
        for message in reversed(messages):
            if message["role"] == "user":
                return message["content"]
        return messages[-1]["content"] if messages else ""

    @staticmethod
    def _build_prompt(
        messages: list[dict[str, str]],
        latest_user_text: str,
        prior_record: FactsRecord | None,
    ) -> list[dict[str, str]]:
        prompt = list(messages)
        if prior_record is not None:
            known = json.dumps(prior_record.to_dict(by_alias=True), ensure_ascii=False)
            prompt.append({"role": "system", "content": f"Facts known so far: {known}"})
        if latest_user_text:
            prompt.append({"role": "user", "content": latest_user_text})
        prompt.append(
            {"role": "system", "content": "Reply with the updated facts as one JSON object."}
        )
        return prompt
