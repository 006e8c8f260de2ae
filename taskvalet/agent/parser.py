"""
Response Parser - turn raw LLM text into a final answer or tool calls.

The LLM is an untrusted producer: it wraps JSON in markdown fences,
mixes up key names, returns structured data where prose was asked for,
and sometimes stops mid-object. Rules are applied in order:

1. Strip markdown code fences.
2. Text starting with ``{`` or ``[`` is parsed strictly and classified
   (tool-call batch, wrapped text, or structured data to summarize).
3. Malformed JSON that looks like a tool call is repaired from regex
   fragments; failing that, a summary is synthesized from the last tool
   result of this turn.
4. Safety net: text handed back for the user never starts with ``{`` or ``[``.

Every function here is pure.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ..constants import (
    ARRAY_TEXT_FIELDS,
    FALLBACK_RESPONSE,
    INDEX_ARRAY_RESPONSE,
    LIST_DISPLAY_LIMIT,
    OBJECT_TEXT_FIELDS,
    REPAIRABLE_PARAMETER_KEYS,
    SYNTHESIS_DISPLAY_LIMIT,
    SYNTHESIS_FALLBACK_RESPONSE,
    TOOL_CALL_MARKERS,
)
from ..result import ToolCallRecord
from ..tools.models import ToolCall

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextResponse:
    """Final answer for the user."""
    content: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ToolCallsResponse:
    """Batch of tool calls, in the order the LLM listed them."""
    calls: List[ToolCall]
    type: str = field(default="tool_calls", init=False)


ParsedResponse = Union[TextResponse, ToolCallsResponse]

# Keys holding a tool call's arguments
_CALL_ARGUMENT_KEYS = ("parameters", "params", "arguments")

_FENCE_BLOCK_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_NUMERIC_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
_TOOL_NAME_RE = re.compile(r'"(?:tool|name)"\s*:\s*"([^"]+)"')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    text = (text or "").strip()
    if text.startswith("```json") or text.startswith("```JSON"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def looks_like_json(text: str) -> bool:
    return text.lstrip().startswith(("{", "["))


def ensure_prose(content: str) -> str:
    """Final safety net: never hand structured-looking text to a human."""
    if not content or not content.strip():
        return FALLBACK_RESPONSE
    if looks_like_json(content):
        logger.warning("Response still looks like JSON after parsing, using fallback")
        return FALLBACK_RESPONSE
    return content.strip()


def _text(content: str) -> TextResponse:
    return TextResponse(ensure_prose(content))


def _call_arguments(obj: Dict[str, Any]) -> Dict[str, Any]:
    for key in _CALL_ARGUMENT_KEYS:
        value = obj.get(key)
        if isinstance(value, dict):
            return value
        if isinstance(value, str) and value.strip():
            # OpenAI-style arguments serialized as a JSON string
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                continue
            if isinstance(decoded, dict):
                return decoded
    return {}


def _has_arguments(obj: Dict[str, Any]) -> bool:
    return any(key in obj for key in _CALL_ARGUMENT_KEYS)


def to_tool_call(obj: Any, strict: bool = True) -> Optional[ToolCall]:
    """
    Interpret one object as a tool call.

    Accepts ``tool`` or ``name`` for the tool name and ``parameters``,
    ``params`` or ``arguments`` for its arguments. With ``strict``, an
    object keyed by ``name`` must either carry an argument key or
    nothing else, so a record like ``{"name": "Sam", "id": "p1"}`` is
    not mistaken for a call while extra fields on a real call (``id``,
    ``reasoning``) are ignored.
    """
    if not isinstance(obj, dict):
        return None

    function = obj.get("function")
    if isinstance(function, dict) and isinstance(function.get("name"), str):
        return ToolCall(name=function["name"], parameters=_call_arguments(function))

    name = obj.get("tool")
    if not isinstance(name, str) or not name:
        name = obj.get("name")
        if not isinstance(name, str) or not name:
            return None
        if strict and set(obj) != {"name"} and not _has_arguments(obj):
            return None
    return ToolCall(name=name, parameters=_call_arguments(obj))


def _tool_calls_from(items: Sequence[Any], strict: bool) -> List[ToolCall]:
    calls = [to_tool_call(item, strict=strict) for item in items]
    return [c for c in calls if c is not None]


def _is_numeric(item: Any) -> bool:
    if isinstance(item, bool):
        return False
    if isinstance(item, (int, float)):
        return True
    return isinstance(item, str) and bool(_NUMERIC_RE.match(item.strip()))


def _first_text_field(obj: Dict[str, Any], fields: Sequence[str]) -> Optional[str]:
    for key in fields:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _item_label(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("title", "content", "name"):
            if isinstance(item.get(key), str) and item[key]:
                return item[key]
        return "Task"
    return str(item)


def format_task_list(tasks: Sequence[Any], limit: int = LIST_DISPLAY_LIMIT) -> str:
    """Numbered task list capped at ``limit`` with a "+N more" suffix."""
    if not tasks:
        return "✅ No tasks found."
    lines = [f"{i}. {_item_label(t)}" for i, t in enumerate(tasks[:limit], start=1)]
    suffix = f"\n...and {len(tasks) - limit} more" if len(tasks) > limit else ""
    return "📋 Tasks:\n" + "\n".join(lines) + suffix


# ---------------------------------------------------------------------------
# Structured (successfully parsed) JSON
# ---------------------------------------------------------------------------


def _parse_array(items: List[Any]) -> ParsedResponse:
    if not items:
        logger.warning("LLM returned an empty array")
        return TextResponse(FALLBACK_RESPONSE)

    first = items[0]
    if isinstance(first, dict):
        calls = _tool_calls_from(items, strict=True)
        if calls:
            return ToolCallsResponse(calls)

        text = _first_text_field(first, ARRAY_TEXT_FIELDS)
        if text is not None:
            logger.info(f"Extracted text from array object: {text[:100]}")
            return _text(text)

    if all(isinstance(i, (str, int, float)) and not isinstance(i, bool) for i in items):
        if all(_is_numeric(i) for i in items):
            # Indices instead of content: the model lost track of what to show
            logger.warning(f"LLM returned array of indices, likely confused: {items[:10]}")
            return TextResponse(INDEX_ARRAY_RESPONSE)
        joined = ", ".join(str(i) for i in items)
        logger.info(f"Converted primitive array to text: {joined[:100]}")
        return _text(joined)

    logger.warning(f"LLM returned unexpected JSON array: {json.dumps(items, default=str)[:200]}")
    return TextResponse(FALLBACK_RESPONSE)


def _parse_object(obj: Dict[str, Any]) -> ParsedResponse:
    raw_calls = obj.get("tool_calls")
    if isinstance(raw_calls, list):
        calls = _tool_calls_from(raw_calls, strict=False)
        if calls:
            return ToolCallsResponse(calls)
        if not raw_calls:
            logger.warning("LLM returned an empty tool_calls list")

    # A single call without the tool_calls wrapper
    single = to_tool_call(obj, strict=True)
    if single is not None and ("tool" in obj or _has_arguments(obj)):
        return ToolCallsResponse([single])

    for key in OBJECT_TEXT_FIELDS:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return _text(value)
        if isinstance(value, dict) and isinstance(value.get("message"), str) and value["message"].strip():
            return _text(value["message"])

    if obj.get("success") is True:
        return TextResponse("✅ Done!")
    if obj.get("success") is False and obj.get("error"):
        return _text(f"❌ Error: {obj['error']}")

    for key in ("title", "task", "name"):
        value = obj.get(key)
        if isinstance(value, dict):
            value = value.get("title") or value.get("name")
        if isinstance(value, str) and value.strip():
            return _text(f"Added: {value}")

    if isinstance(obj.get("tasks"), list):
        return TextResponse(format_task_list(obj["tasks"]))

    count = obj.get("count")
    if isinstance(count, (int, float)) and not isinstance(count, bool):
        return TextResponse(f"Found {count} item(s).")

    logger.warning(
        f"LLM returned unexpected JSON structure: keys={list(obj.keys())[:20]}, "
        f"preview={json.dumps(obj, default=str)[:200]}"
    )
    return TextResponse(FALLBACK_RESPONSE)


def parse_structured(value: Any) -> ParsedResponse:
    """Classify an already-decoded JSON value."""
    if isinstance(value, list):
        return _parse_array(value)
    if isinstance(value, dict):
        return _parse_object(value)
    return _text(str(value))


# ---------------------------------------------------------------------------
# Malformed JSON
# ---------------------------------------------------------------------------


def repair_tool_call(text: str) -> Optional[ToolCall]:
    """
    Recover a single tool call from truncated or malformed JSON.

    Best-effort only: the tool name and a fixed set of common parameter
    keys are pulled out with regular expressions. ``title`` is accepted
    even when cut off mid-value.
    """
    name_match = _TOOL_NAME_RE.search(text)
    if not name_match:
        return None

    parameters: Dict[str, Any] = {}
    for key in REPAIRABLE_PARAMETER_KEYS:
        if key == "title":
            match = re.search(r'"title"\s*:\s*"((?:[^"\\]|\\.)*)', text)
        else:
            match = re.search(rf'"{key}"\s*:\s*"([^"]+)"', text)
        if not match:
            continue
        value = match.group(1).rstrip("\\")
        if value:
            parameters[key] = value.replace('\\"', '"')

    if not parameters:
        return None

    logger.info(f"Repaired truncated tool call: {name_match.group(1)} {parameters}")
    return ToolCall(name=name_match.group(1), parameters=parameters)


def synthesize_from_tool_calls(prior_tool_calls: Sequence[ToolCallRecord]) -> str:
    """Best-effort summary from the shape of the last tool result."""
    last = prior_tool_calls[-1]
    data = last.result.data if last.result.success else None
    if isinstance(data, dict):
        tasks = data.get("tasks")
        if isinstance(tasks, list):
            if not tasks:
                return "📋 No tasks found."
            lines = []
            for i, task in enumerate(tasks[:SYNTHESIS_DISPLAY_LIMIT], start=1):
                due = task.get("dueString") or task.get("due_string") if isinstance(task, dict) else None
                lines.append(f"{i}. {_item_label(task)}" + (f" ({due})" if due else ""))
            return "📋 Tasks:\n" + "\n".join(lines)
        people = data.get("people")
        if isinstance(people, list):
            if not people:
                return "👤 No people found."
            return f"Found {len(people)} person(s)."
    return SYNTHESIS_FALLBACK_RESPONSE


def _recover_malformed(
    text: str,
    has_tool_results: bool,
    prior_tool_calls: Sequence[ToolCallRecord],
) -> ParsedResponse:
    if not any(marker in text for marker in TOOL_CALL_MARKERS):
        logger.warning("LLM returned malformed JSON, using fallback")
        return TextResponse(FALLBACK_RESPONSE)

    logger.warning("LLM returned malformed JSON that looks like tool calls")
    repaired = repair_tool_call(text)
    if repaired is not None:
        return ToolCallsResponse([repaired])

    if has_tool_results and prior_tool_calls:
        logger.info("Synthesizing response from existing tool results")
        return TextResponse(synthesize_from_tool_calls(prior_tool_calls))

    return TextResponse(FALLBACK_RESPONSE)


# ---------------------------------------------------------------------------
# JSON embedded in prose
# ---------------------------------------------------------------------------


def _embedded_tool_calls(text: str) -> Optional[ToolCallsResponse]:
    """Find a tool-call batch the LLM wrapped in explanatory prose."""
    candidates = [m.group(1).strip() for m in _FENCE_BLOCK_RE.finditer(text)]
    if "tool_calls" in text:
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    for candidate in candidates:
        if not looks_like_json(candidate):
            continue
        try:
            parsed = parse_structured(json.loads(candidate))
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, ToolCallsResponse):
            logger.info("Extracted tool calls embedded in prose")
            return parsed
    return None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_response(
    raw: str,
    has_tool_results: bool = False,
    prior_tool_calls: Optional[Sequence[ToolCallRecord]] = None,
) -> ParsedResponse:
    """
    Parse an LLM response into a final answer or a batch of tool calls.

    Args:
        raw: Raw LLM output
        has_tool_results: Whether this turn already executed tools
        prior_tool_calls: Tool calls executed so far this turn (for synthesis)

    Returns:
        TextResponse (content always safe to show a human) or ToolCallsResponse
    """
    prior_tool_calls = prior_tool_calls or []
    text = strip_code_fences(raw)

    if looks_like_json(text):
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            return _recover_malformed(text, has_tool_results, prior_tool_calls)
        return parse_structured(value)

    embedded = _embedded_tool_calls(text)
    if embedded is not None:
        return embedded

    return _text(text)
