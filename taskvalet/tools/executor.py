"""
TaskValet Tool Executor - Validate and execute tool calls

Runs one tool call at a time inside a failure boundary and records the
result's side-effect bookkeeping (tracked entities, undo actions) into
the caller's conversation context. Nothing raised by a tool body ever
escapes: every outcome is a ToolResult.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from .models import ToolCall, ToolContext, ToolDefinition, ToolResult, TrackedEntities, UndoAction
from .validation import validate_params

logger = logging.getLogger(__name__)


@dataclass
class ExecutedCall:
    """A tool call paired with its result."""
    call: ToolCall
    result: ToolResult


def unknown_tool_result(name: str) -> ToolResult:
    return ToolResult.fail(f"Unknown tool: {name}")


async def execute_tool(tool: ToolDefinition, params: Any, context: ToolContext) -> ToolResult:
    """
    Execute a single tool call.

    Args:
        tool: Tool to run
        params: Parameters from the parser (validated here)
        context: Execution context; its conversation is updated in place

    Returns:
        ToolResult (never raises)
    """
    validation = validate_params(params, tool)
    if not validation.valid:
        logger.info(f"Tool '{tool.name}' rejected parameters: {validation.error}")
        return ToolResult.fail(validation.error)

    try:
        result = await tool.executor(params, context)
    except Exception as e:
        logger.error(f"Tool '{tool.name}' execution failed: {e}", exc_info=True)
        return ToolResult.fail(str(e) or "Unknown error")

    if not isinstance(result, ToolResult):
        logger.error(f"Tool '{tool.name}' returned {type(result).__name__}, expected ToolResult")
        return ToolResult.fail(f"Tool '{tool.name}' returned an invalid result")

    if result.success:
        if result.track_entities is not None and not isinstance(result.track_entities, TrackedEntities):
            logger.error(
                f"Tool '{tool.name}' returned track_entities of type "
                f"{type(result.track_entities).__name__}, expected TrackedEntities"
            )
            return ToolResult.fail(f"Tool '{tool.name}' returned invalid tracked entities")
        if result.undo_action is not None and not isinstance(result.undo_action, UndoAction):
            logger.error(
                f"Tool '{tool.name}' returned undo_action of type "
                f"{type(result.undo_action).__name__}, expected UndoAction"
            )
            return ToolResult.fail(f"Tool '{tool.name}' returned an invalid undo action")

        conversation = context.conversation
        if result.track_entities is not None:
            conversation.track(result.track_entities)
        if result.undo_action is not None:
            conversation.push_undo(result.undo_action)

    return result


async def execute_tool_calls(
    calls: Iterable[ToolCall],
    tools: Mapping[str, ToolDefinition],
    context: ToolContext,
) -> List[ExecutedCall]:
    """
    Execute tool calls sequentially, in order.

    Later calls may depend on IDs minted by earlier ones, so calls are
    never run concurrently.
    """
    executed: List[ExecutedCall] = []
    for call in calls:
        tool = tools.get(call.name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {call.name}")
            executed.append(ExecutedCall(call, unknown_tool_result(call.name)))
            continue
        result = await execute_tool(tool, call.parameters, context)
        executed.append(ExecutedCall(call, result))
    return executed


def _serialize(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def format_tool_results(executed: Iterable[ExecutedCall]) -> str:
    """Format results as the TOOL RESULTS block fed back to the LLM."""
    blocks = []
    for item in executed:
        if item.result.success:
            blocks.append(f"{item.call.name}: {_serialize(item.result.data)}")
        else:
            blocks.append(f"{item.call.name}: Error: {item.result.error}")
    return "\n\n".join(blocks)


def format_tool_calls(calls: Iterable[ToolCall]) -> str:
    """Summarize calls as the ASSISTANT transcript entry."""
    lines = [f"{c.name}({_serialize(c.parameters)})" for c in calls]
    return "Tool calls:\n" + "\n".join(lines)


def tools_by_name(tools: Iterable[ToolDefinition]) -> Dict[str, ToolDefinition]:
    return {t.name: t for t in tools}
