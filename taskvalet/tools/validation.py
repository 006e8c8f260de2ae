"""
Parameter validation for tool calls.

Checks LLM-supplied parameters against a tool's declared schema before
the tool body runs. Validation is permissive where LLMs are
sloppy but harmless: unknown keys are ignored and numeric strings are
accepted where a number is expected.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from .models import ToolDefinition


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None


_VALID = ValidationResult(valid=True)


def json_type_of(value: Any) -> str:
    """Return the JSON type name of a Python value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    if value is None:
        return "null"
    return type(value).__name__


def _is_numeric_string(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        return math.isfinite(float(value))
    except ValueError:
        return False


def _type_matches(expected: str, value: Any) -> bool:
    actual = json_type_of(value)
    if expected in ("number", "integer"):
        return actual == "number" or _is_numeric_string(value)
    return actual == expected


def validate_params(params: Any, tool: ToolDefinition) -> ValidationResult:
    """
    Validate tool-call parameters against the tool's schema.

    Args:
        params: Parameters as produced by the parser (untrusted)
        tool: Tool whose schema applies

    Returns:
        ValidationResult with the first problem found, if any
    """
    if not isinstance(params, dict):
        return ValidationResult(False, "Parameters must be an object")

    for name in tool.required:
        if params.get(name) is None:
            return ValidationResult(False, f"Missing required parameter: {name}")

    properties = tool.properties
    for key, value in params.items():
        prop = properties.get(key)
        if prop is None:
            # Extra keys (reasoning, notes) are allowed
            continue
        if value is None:
            continue

        expected = prop.get("type")
        if expected and not _type_matches(expected, value):
            return ValidationResult(
                False,
                f"Parameter '{key}' should be {expected}, got {json_type_of(value)}",
            )

        enum_values = prop.get("enum")
        if enum_values and value not in enum_values:
            return ValidationResult(
                False,
                f"Parameter '{key}' must be one of: {', '.join(str(v) for v in enum_values)}",
            )

    return _VALID
