"""
Undo tool - reverses the most recent side-effecting tool result.

The reversal itself touches the system of record, so it is delegated to
handlers supplied by the application, one per UndoActionType.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping

from ..constants import UNDO_TOOL_NAME
from .models import ToolContext, ToolDefinition, ToolResult, UndoAction, UndoActionType

logger = logging.getLogger(__name__)

UndoHandler = Callable[[UndoAction, ToolContext], Awaitable[Any]]

# What the tool reports as undone, per action type
_UNDONE_LABELS = {
    UndoActionType.DELETE_CREATED_ITEM: "creation",
    UndoActionType.RESTORE_DELETED_ITEM: "deletion",
    UndoActionType.REVERT_UPDATE: "update",
    UndoActionType.UNCOMPLETE: "completion",
    UndoActionType.RESTORE_REMOVED_ENTITY: "removal",
}


def make_undo_tool(handlers: Mapping[UndoActionType, UndoHandler]) -> ToolDefinition:
    """
    Build the ``undo_last_action`` tool.

    Args:
        handlers: Reversal coroutine per action type. A handler receives the
            popped action and the tool context; whatever it returns is
            reported back to the LLM as ``details``.

    Returns:
        ToolDefinition ready to register
    """
    registered: Dict[UndoActionType, UndoHandler] = {
        UndoActionType(k): v for k, v in handlers.items()
    }

    async def undo_last_action(params: Dict[str, Any], context: ToolContext) -> ToolResult:
        conversation = context.conversation
        action = conversation.pop_undo()
        if action is None:
            return ToolResult.fail("Nothing to undo")

        handler = registered.get(action.type)
        if handler is None:
            conversation.push_undo(action)
            return ToolResult.fail(f"No handler for undo action: {action.type.value}")

        try:
            details = await handler(action, context)
        except Exception:
            # Leave the action on the stack so the user can retry
            conversation.push_undo(action)
            raise

        logger.info(f"Undid {action.type.value} for user {context.user_id}")
        data: Dict[str, Any] = {"undone": _UNDONE_LABELS[action.type]}
        if action.item_id:
            data["item_id"] = action.item_id
        if details is not None:
            data["details"] = details
        return ToolResult.ok(data=data)

    return ToolDefinition(
        name=UNDO_TOOL_NAME,
        description="Undo the most recent action (create, update, complete, or delete).",
        parameters={"type": "object", "properties": {}, "required": []},
        executor=undo_last_action,
    )
