"""
TaskValet Agent - the tool-calling loop and its helpers

Provides:
- AgentLoop / run_agent_loop / create_agent_runner: Drive one user turn
- parse_response: Turn raw LLM output into text or tool calls
- build_system_prompt / build_full_prompt: Prompt assembly
- ConversationContext / MemoryContextStore: Short-lived per-user memory
"""

from .context import (
    ActiveFlow,
    ContextStore,
    ConversationContext,
    MemoryContextStore,
)
from .loop import AgentLoop, AgentLoopConfig, AgentRunner, create_agent_runner, run_agent_loop
from .parser import (
    ParsedResponse,
    TextResponse,
    ToolCallsResponse,
    parse_response,
    repair_tool_call,
    strip_code_fences,
    synthesize_from_tool_calls,
)
from .prompts import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ROLE_USER,
    TranscriptMessage,
    build_full_prompt,
    build_system_prompt,
    build_tool_instructions,
)

__all__ = [
    # Context
    "ActiveFlow",
    "ContextStore",
    "ConversationContext",
    "MemoryContextStore",
    # Loop
    "AgentLoop",
    "AgentLoopConfig",
    "AgentRunner",
    "create_agent_runner",
    "run_agent_loop",
    # Parser
    "ParsedResponse",
    "TextResponse",
    "ToolCallsResponse",
    "parse_response",
    "repair_tool_call",
    "strip_code_fences",
    "synthesize_from_tool_calls",
    # Prompts
    "ROLE_ASSISTANT",
    "ROLE_TOOL",
    "ROLE_USER",
    "TranscriptMessage",
    "build_full_prompt",
    "build_system_prompt",
    "build_tool_instructions",
]
