"""
Agent Loop - drives the bounded call/parse/execute cycle.

Each iteration builds the prompt, calls the LLM, parses the reply and
either returns the final text or executes the requested tools in order
and feeds their results back. Only two outcomes give up on a turn: the
LLM call raising, and running out of iterations. Every other failure
(unknown tool, bad parameters, tool exception, malformed JSON) becomes an
observation in the next prompt so the model can recover.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..constants import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_RESPONSE_CHAR_BUDGET,
    LLM_ERROR_RESPONSE,
    MAX_ITERATIONS_ERROR,
    MAX_ITERATIONS_RESPONSE,
)
from ..protocols import TextGenerationProtocol
from ..result import AgentResult, ToolCallRecord
from ..tools.executor import (
    execute_tool_calls,
    format_tool_calls,
    format_tool_results,
    tools_by_name,
)
from ..tools.models import ToolContext, ToolDefinition
from ..tools.registry import ToolRegistry
from .parser import TextResponse, parse_response
from .prompts import (
    ROLE_ASSISTANT,
    ROLE_TOOL,
    ROLE_USER,
    TranscriptMessage,
    build_full_prompt,
    build_system_prompt,
)

logger = logging.getLogger(__name__)


@dataclass
class AgentLoopConfig:
    """All agent loop configuration centralized in one place."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    """Maximum LLM calls per turn."""
    response_char_budget: int = DEFAULT_RESPONSE_CHAR_BUDGET
    """Character limit the final answer is asked to respect."""
    llm_error_response: str = LLM_ERROR_RESPONSE
    """User-facing text when the LLM call fails."""
    max_iterations_response: str = MAX_ITERATIONS_RESPONSE
    """User-facing text when the iteration budget runs out."""
    log_preview_chars: int = 500
    """How much of each raw LLM response to log at debug level."""


def _context_delta(before: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
    """Conversation fields whose value changed since ``before``."""
    after = context.conversation.snapshot()
    return {key: value for key, value in after.items() if before.get(key) != value}


class AgentLoop:
    """
    Tool-calling agent orchestrator.

    Example:
        loop = AgentLoop(llm_client=my_client)
        result = await loop.run(
            message="buy milk",
            tools=registry.all_tools(),
            context=ToolContext(user_id="u1", conversation=conversation),
        )
        print(result.response)
    """

    def __init__(
        self,
        llm_client: TextGenerationProtocol,
        config: Optional[AgentLoopConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if llm_client is None:
            raise ValueError("llm_client is required")
        self.llm_client = llm_client
        self.config = config or AgentLoopConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def run(
        self,
        message: str,
        tools: Sequence[ToolDefinition],
        context: ToolContext,
        max_iterations: Optional[int] = None,
    ) -> AgentResult:
        """
        Run one turn for a user message.

        Args:
            message: The user's message
            tools: Tools the LLM may call this turn
            context: Execution context; its conversation is updated in place
            max_iterations: Override the configured iteration budget

        Returns:
            AgentResult with the final response, audit trail and context delta
        """
        if max_iterations is None:
            max_iterations = self.config.max_iterations
        available = tools_by_name(tools)
        records: List[ToolCallRecord] = []
        context_before = context.conversation.snapshot()

        logger.info(
            f"Agent loop start: user={context.user_id}, tools={list(available)}, "
            f"max_iterations={max_iterations}"
        )

        system_prompt = build_system_prompt(
            available.values(), context.timezone, self._clock(), context.conversation
        )
        messages: List[TranscriptMessage] = [TranscriptMessage(ROLE_USER, message)]

        for iteration in range(max_iterations):
            logger.debug(f"Agent loop iteration {iteration + 1}/{max_iterations}")

            prompt = build_full_prompt(system_prompt, messages, self.config.response_char_budget)
            try:
                raw = await self.llm_client.generate(prompt)
            except Exception as e:
                logger.error(f"LLM call failed: {e}", exc_info=True)
                return AgentResult(
                    success=False,
                    response=self.config.llm_error_response,
                    tool_calls=records,
                    updated_context=_context_delta(context_before, context),
                    error=str(e) or type(e).__name__,
                )

            raw = raw or ""
            logger.debug(f"LLM raw response ({len(raw)} chars): {raw[: self.config.log_preview_chars]}")

            has_tool_results = any(m.role == ROLE_TOOL for m in messages)
            parsed = parse_response(raw, has_tool_results, records)

            if isinstance(parsed, TextResponse):
                logger.info(
                    f"Agent loop complete: iterations={iteration + 1}, tool_calls={len(records)}"
                )
                return AgentResult(
                    success=True,
                    response=parsed.content,
                    tool_calls=records,
                    updated_context=_context_delta(context_before, context),
                )

            executed = await execute_tool_calls(parsed.calls, available, context)
            for item in executed:
                logger.info(
                    f"Tool '{item.call.name}' executed: "
                    f"{'success' if item.result.success else 'error'}"
                )
                records.append(
                    ToolCallRecord(tool=item.call.name, params=item.call.parameters, result=item.result)
                )

            messages.append(TranscriptMessage(ROLE_ASSISTANT, format_tool_calls(parsed.calls)))
            messages.append(TranscriptMessage(ROLE_TOOL, format_tool_results(executed)))

        logger.warning(
            f"Agent loop exceeded {max_iterations} iterations (tool_calls={len(records)})"
        )
        return AgentResult(
            success=False,
            response=self.config.max_iterations_response,
            tool_calls=records,
            updated_context=_context_delta(context_before, context),
            error=MAX_ITERATIONS_ERROR,
        )


async def run_agent_loop(
    message: str,
    tools: Sequence[ToolDefinition],
    context: ToolContext,
    llm_client: TextGenerationProtocol,
    max_iterations: Optional[int] = None,
    config: Optional[AgentLoopConfig] = None,
) -> AgentResult:
    """
    Run the agent loop once. See :class:`AgentLoop`.

    ``max_iterations`` overrides ``config.max_iterations``, which defaults
    to DEFAULT_MAX_ITERATIONS.
    """
    return await AgentLoop(llm_client, config).run(message, tools, context, max_iterations)


class AgentRunner:
    """Agent loop bound to one context and tool set."""

    def __init__(self, loop: AgentLoop, context: ToolContext, tools: Sequence[ToolDefinition]):
        self.loop = loop
        self.context = context
        self.tools = list(tools)

    async def run(self, message: str) -> AgentResult:
        return await self.loop.run(message, self.tools, self.context)


def create_agent_runner(
    llm_client: TextGenerationProtocol,
    context: ToolContext,
    tools: Optional[Sequence[ToolDefinition]] = None,
    config: Optional[AgentLoopConfig] = None,
) -> AgentRunner:
    """Create a runner, defaulting to every tool in the global registry."""
    if tools is None:
        tools = ToolRegistry.get_instance().all_tools()
    return AgentRunner(AgentLoop(llm_client, config), context, tools)
