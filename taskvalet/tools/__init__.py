"""
TaskValet Tools - Tool contract, validation and execution

Provides:
- ToolDefinition: Declare a tool (name, description, schema, executor)
- ToolResult / UndoAction / TrackedEntities: What tools return
- validate_params: Check LLM parameters against a tool's schema
- execute_tool / execute_tool_calls: Run calls inside a failure boundary
- ToolRegistry: Register and group tools
- make_undo_tool: The undo_last_action tool
"""

from .models import (
    PersonReference,
    TaskReference,
    ToolCall,
    ToolContext,
    ToolDefinition,
    ToolResult,
    TrackedEntities,
    UndoAction,
    UndoActionType,
)
from .validation import ValidationResult, validate_params
from .executor import (
    ExecutedCall,
    execute_tool,
    execute_tool_calls,
    format_tool_calls,
    format_tool_results,
    tools_by_name,
)
from .registry import ToolRegistry, format_tools_for_prompt
from .undo import UndoHandler, make_undo_tool

__all__ = [
    # Models
    "PersonReference",
    "TaskReference",
    "ToolCall",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "TrackedEntities",
    "UndoAction",
    "UndoActionType",
    # Validation
    "ValidationResult",
    "validate_params",
    # Executor
    "ExecutedCall",
    "execute_tool",
    "execute_tool_calls",
    "format_tool_calls",
    "format_tool_results",
    "tools_by_name",
    # Registry
    "ToolRegistry",
    "format_tools_for_prompt",
    # Undo
    "UndoHandler",
    "make_undo_tool",
]
