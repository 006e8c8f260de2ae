"""
TaskValet Tool Registry - Central registry for available tools

Tools are registered once at process start. Named tool sets group tools
for narrower agents (e.g. a lookup-only agent).
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from .models import ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of tool definitions

    Usage:
        registry = ToolRegistry.get_instance()
        registry.register(create_task_tool)
        registry.define_tool_set("lookup", ["lookup_tasks", "lookup_people"])
        tools = registry.get_tool_set("lookup")

    Plain ``ToolRegistry()`` instances are independent of the process-wide
    singleton, which keeps tests isolated.
    """

    _instance: Optional["ToolRegistry"] = None
    _lock: threading.Lock = threading.Lock()

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: Dict[str, ToolDefinition] = {}
        self._tool_sets: Dict[str, List[str]] = {}
        for tool in tools or []:
            self.register(tool)

    @classmethod
    def get_instance(cls) -> "ToolRegistry":
        """Get singleton instance"""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset the singleton (for testing)"""
        with cls._lock:
            cls._instance = None

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def register(self, tool: ToolDefinition) -> ToolDefinition:
        """
        Register a tool definition

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")
        return tool

    def unregister(self, name: str) -> bool:
        if name in self._tools:
            del self._tools[name]
            return True
        return False

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def get_tools(self, names: Iterable[str]) -> List[ToolDefinition]:
        """Get tools by name, skipping unknown names"""
        return [self._tools[n] for n in names if n in self._tools]

    def all_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def define_tool_set(self, set_name: str, tool_names: Iterable[str]) -> None:
        names = list(tool_names)
        missing = [n for n in names if n not in self._tools]
        if missing:
            raise ValueError(f"Tool set '{set_name}' references unknown tools: {', '.join(missing)}")
        self._tool_sets[set_name] = names

    def get_tool_set(self, set_name: str) -> List[ToolDefinition]:
        if set_name not in self._tool_sets:
            raise KeyError(f"Unknown tool set: {set_name}")
        return self.get_tools(self._tool_sets[set_name])

    def clear(self) -> None:
        self._tools.clear()
        self._tool_sets.clear()


def format_tools_for_prompt(tools: Iterable[ToolDefinition]) -> str:
    """Render the tool catalogue for the system prompt."""
    return "\n\n".join(tool.to_prompt_block() for tool in tools)
