"""
TaskValet - A tool-calling agent orchestrator for SMS task assistants

TaskValet turns a free-form user message into a sequence of validated tool
invocations and a short plain-text reply. The LLM picks tools by emitting
JSON; TaskValet validates parameters, runs the tools in order, feeds the
results back and repairs whatever malformed output the model produces, so
the user never sees raw JSON.

Quick Start:
    from typing import Annotated, Literal
    from taskvalet import TaskValet, tool, ToolResult, TaskReference, TrackedEntities

    @tool
    async def create_task(
        title: Annotated[str, "Clean task title"],
        type: Annotated[Literal["action", "project", "waiting"], "GTD task type"],
        *,
        context,
    ) -> ToolResult:
        '''Create a new task'''
        task = await context.services["tasks"].create(title=title, type=type)
        return ToolResult.ok(
            data={"id": task.id, "title": task.title},
            track_entities=TrackedEntities(
                tasks=[TaskReference(task.id, task.title, type)],
                last_created_id=task.id,
            ),
        )

    app = TaskValet.from_yaml("config.yaml")
    app.registry.register(create_task)
    result = await app.handle_message("user-1", "buy milk")

Lower level:
    result = await run_agent_loop("buy milk", [create_task], context, llm_client)
"""

__version__ = "0.1.0"

# Tool contract
from .tools import (
    PersonReference,
    TaskReference,
    ToolCall,
    ToolContext,
    ToolDefinition,
    ToolRegistry,
    ToolResult,
    TrackedEntities,
    UndoAction,
    UndoActionType,
    ValidationResult,
    execute_tool,
    make_undo_tool,
    validate_params,
)
from .tool_decorator import tool

# Agent loop
from .agent import (
    ActiveFlow,
    AgentLoop,
    AgentLoopConfig,
    ContextStore,
    ConversationContext,
    MemoryContextStore,
    create_agent_runner,
    parse_response,
    run_agent_loop,
)
from .result import AgentResult, ToolCallRecord
from .protocols import TextGenerationProtocol

# Configuration and application
from .config import TaskValetConfig, load_config
from .app import TaskValet

__all__ = [
    "__version__",
    # Tools
    "PersonReference",
    "TaskReference",
    "ToolCall",
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
    "TrackedEntities",
    "UndoAction",
    "UndoActionType",
    "ValidationResult",
    "execute_tool",
    "make_undo_tool",
    "validate_params",
    "tool",
    # Agent
    "ActiveFlow",
    "AgentLoop",
    "AgentLoopConfig",
    "ContextStore",
    "ConversationContext",
    "MemoryContextStore",
    "create_agent_runner",
    "parse_response",
    "run_agent_loop",
    "AgentResult",
    "ToolCallRecord",
    "TextGenerationProtocol",
    # App
    "TaskValetConfig",
    "load_config",
    "TaskValet",
]
