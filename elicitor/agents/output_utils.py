"""Agent output extraction utilities.

Canonical helpers for pulling text and JSON out of agent results. The fact
extractor relies on these to turn free-form model replies into a dict it
can validate.

- extract_text_from_result(result) -> str: Extract text from any agent result format
- extract_json_from_text(text) -> dict | None: Extract a JSON object from markdown/text
"""

import json
import logging
import re
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_THINKING_TAG_RE = re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE)
_JSON_CODE_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)```")
_ANY_CODE_BLOCK_RE = re.compile(r"```\s*([\s\S]*?)```")


def extract_text_from_result(result: Any) -> str:
    """Extract text output from various agent result formats.

    Handles Pydantic models, AgentResult (dict or object message), plain
    strings and dicts. Strips ``<thinking>`` tags from the output.
    """
    if isinstance(result, BaseModel):
        return result.model_dump_json()

    structured = getattr(result, "structured_output", None)
    if isinstance(structured, BaseModel):
        return structured.model_dump_json()

    if hasattr(result, "message"):
        output_text = _extract_from_message(result.message)
    elif isinstance(result, str):
        output_text = result
    elif isinstance(result, dict):
        output_text = _extract_from_dict(result)
    elif result is None:
        output_text = ""
    else:
        output_text = str(result)

    return _THINKING_TAG_RE.sub("", output_text).strip()


def extract_json_from_text(text: str) -> dict | None:
    """Extract and parse a JSON object from text that may contain code fences.

    Strategy chain (most specific → most permissive):
    1. Direct ``json.loads()`` (for pure JSON input)
    2. Fenced code block, ``json``-tagged first, then untagged
    3. Character scan for ``{`` to its matching ``}``

    Returns:
        Parsed dict, or None if no valid JSON object was found.
    """
    if not text or not text.strip():
        return None

    text = text.strip()

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except (json.JSONDecodeError, TypeError):
        pass

    for pattern in (_JSON_CODE_BLOCK_RE, _ANY_CODE_BLOCK_RE):
        match = pattern.search(text)
        if not match:
            continue
        try:
            parsed = json.loads(match.group(1).strip())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    return _scan_json_object(text)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _extract_from_message(msg: Any) -> str:
    if isinstance(msg, dict) and "content" in msg:
        return _extract_from_content(msg["content"])
    if hasattr(msg, "content"):
        return _extract_from_content(msg.content)
    return str(msg)


def _extract_from_content(content: Any) -> str:
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(item["text"])
            elif hasattr(item, "text"):
                parts.append(item.text)
        if not parts:
            logger.warning(f"No text content extracted from content list ({len(content)} items)")
        return "".join(parts)

    return str(content)


def _extract_from_dict(result: dict) -> str:
    if "content" in result:
        return _extract_from_content(result["content"])
    if "text" in result:
        return str(result["text"])
    return json.dumps(result, ensure_ascii=False)


def _scan_json_object(text: str) -> dict | None:
    """Scan text for the first balanced JSON object { ... }."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    parsed = json.loads(text[start : i + 1])
                except json.JSONDecodeError:
                    return None
                return parsed if isinstance(parsed, dict) else None

    return None
