"""
TaskValet Result - Terminal output of one agent loop invocation

Provides a unified result structure carrying the user-facing response,
the audit trail of tool calls and the conversation context changes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .tools.models import ToolResult


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class ToolCallRecord:
    """
    Audit entry for one tool call made during the loop.

    Attributes:
        tool: Tool name as requested by the LLM
        params: Parameters as requested by the LLM
        result: Outcome (failures included)
    """
    tool: str
    params: Dict[str, Any]
    result: ToolResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "params": self.params,
            "result": self.result.to_dict(),
        }


@dataclass
class AgentResult:
    """
    Result of one agent loop run

    Attributes:
        success: False only for LLM transport failure or budget exhaustion
        response: Text for the user; always prose, never a JSON document
        tool_calls: Ordered audit trail of every tool call
        updated_context: Conversation context fields changed during the run
        error: Internal error description when success is False

    Example:
        result = await run_agent_loop("buy milk", tools, context, llm_client)
        if result.success:
            send_sms(result.response)
    """
    success: bool
    response: str
    tool_calls: List[ToolCallRecord] = field(default_factory=list)
    updated_context: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def tool_names(self) -> List[str]:
        return [record.tool for record in self.tool_calls]

    def failed_calls(self) -> List[ToolCallRecord]:
        return [record for record in self.tool_calls if not record.result.success]

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to a JSON-friendly dictionary"""
        return {
            "success": self.success,
            "response": self.response,
            "tool_calls": [record.to_dict() for record in self.tool_calls],
            "updated_context": {k: _to_jsonable(v) for k, v in self.updated_context.items()},
            "error": self.error,
        }
