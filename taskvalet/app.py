"""
TaskValet Application - Single entry point for the tool-calling assistant.

Usage:
    from taskvalet import TaskValet

    app = TaskValet.from_yaml("config.yaml")
    app.registry.register(create_task)

    result = await app.handle_message("user-1", "buy milk")
    print(result.response)
"""

import logging
import time
from typing import Any, Dict, Optional, Sequence

from .agent.context import ContextStore, MemoryContextStore
from .agent.loop import AgentLoop
from .config import TaskValetConfig, load_config
from .llm.litellm_client import LiteLLMClient
from .protocols import TextGenerationProtocol
from .result import AgentResult
from .tools.models import ToolContext, ToolDefinition
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class TaskValet:
    """
    TaskValet application entry point.

    Ties together the LLM client, the conversation context store, the tool
    registry and the agent loop. Each call to handle_message is one user
    turn: load context, run the loop, write the context changes back.

    Args:
        config: Validated configuration
        llm_client: LLM collaborator; built from ``config.llm`` when omitted
        store: Conversation context store; in-memory by default
        registry: Tool registry; the global registry by default

    Example:
        app = TaskValet(config, llm_client=my_client)
        result = await app.handle_message("user-1", "what's on my list?")
    """

    def __init__(
        self,
        config: TaskValetConfig,
        llm_client: Optional[TextGenerationProtocol] = None,
        store: Optional[ContextStore] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.config = config
        if llm_client is None:
            llm_client = LiteLLMClient(
                config=config.llm.to_llm_config(),
                provider_name=config.llm.provider,
            )
            logger.info(f"LLM client: provider={config.llm.provider}, model={config.llm.model}")
        self.llm_client = llm_client
        self.store = store or MemoryContextStore(ttl=config.context.ttl)
        self.registry = registry or ToolRegistry.get_instance()
        self.loop = AgentLoop(llm_client, config.agent.to_loop_config())
        self._last_cleanup: Optional[float] = None

    @classmethod
    def from_yaml(cls, path: str, **kwargs) -> "TaskValet":
        """Build the application from a YAML config file."""
        return cls(load_config(path), **kwargs)

    async def handle_message(
        self,
        user_id: str,
        message: str,
        tools: Optional[Sequence[ToolDefinition]] = None,
        timezone: Optional[str] = None,
        services: Optional[Dict[str, Any]] = None,
    ) -> AgentResult:
        """
        Process one user message.

        Args:
            user_id: User the message belongs to
            message: Message text
            tools: Tools for this turn (default: every registered tool)
            timezone: User's IANA timezone (default: config.agent.default_timezone)
            services: Collaborator clients passed to tool bodies

        Returns:
            AgentResult of the turn
        """
        self._maybe_cleanup()

        conversation = await self.store.get(user_id)
        context = ToolContext(
            user_id=user_id,
            conversation=conversation,
            timezone=timezone or self.config.agent.default_timezone,
            services=services or {},
        )
        if tools is None:
            tools = self.registry.all_tools()

        result = await self.loop.run(message, tools, context)

        await self.store.update(user_id, result.updated_context)
        if not result.success:
            logger.warning(f"Turn for {user_id} ended without success: {result.error}")
        return result

    async def reset_conversation(self, user_id: str) -> bool:
        """Forget the user's conversation context."""
        return await self.store.clear(user_id)

    def _maybe_cleanup(self) -> None:
        """Sweep expired contexts at most once per cleanup interval."""
        now = time.monotonic()
        interval = self.config.context.cleanup_interval_seconds
        if self._last_cleanup is not None and now - self._last_cleanup < interval:
            return
        self._last_cleanup = now
        self.store.cleanup_expired()
