"""
Shared constants for the TaskValet framework.

Centralizes limits and user-facing fallback messages that are needed by
the executor, the parser and the agent loop.
"""

from typing import Tuple

# ── Conversation context bounds ──

MAX_UNDO_STACK = 5
MAX_TRACKED_ENTITIES = 10
CONTEXT_TTL_SECONDS = 60 * 60

# ── Agent loop ──

DEFAULT_MAX_ITERATIONS = 5
DEFAULT_RESPONSE_CHAR_BUDGET = 320

LLM_ERROR_RESPONSE = "I'm having trouble processing your request. Please try again."
MAX_ITERATIONS_RESPONSE = "I'm having trouble completing your request. Please try rephrasing."
MAX_ITERATIONS_ERROR = "Max iterations reached"

# ── Response parser ──

FALLBACK_RESPONSE = (
    "I processed your request but couldn't format the response. Please try again."
)
INDEX_ARRAY_RESPONSE = (
    "I found what you asked for but need to format the response. "
    "Let me try again - please repeat your question."
)
SYNTHESIS_FALLBACK_RESPONSE = (
    "✅ Found what you asked for. Please try asking again for details."
)

# Keys the LLM uses for a plain-text answer wrapped in a JSON object.
OBJECT_TEXT_FIELDS: Tuple[str, ...] = ("response", "message", "text", "content", "reply", "data")
# Keys checked on the first element of an array of objects.
ARRAY_TEXT_FIELDS: Tuple[str, ...] = ("text", "response", "message", "content", "reply", "answer")

# Fragments that mark a failed JSON parse as a probable tool call.
TOOL_CALL_MARKERS: Tuple[str, ...] = ('"tool"', '"tool_calls"', '"parameters"')
# Parameter keys recoverable from truncated tool-call JSON.
REPAIRABLE_PARAMETER_KEYS: Tuple[str, ...] = ("title", "personName", "dueDate", "context", "type")

LIST_DISPLAY_LIMIT = 10
SYNTHESIS_DISPLAY_LIMIT = 5

# ── Undo ──

UNDO_TOOL_NAME = "undo_last_action"
