"""
Tests for the @tool decorator

Tests cover:
- Schema generation from type hints
- Annotated descriptions and Literal enums
- Required vs optional parameters
- The generated executor (defaults, coercion, return wrapping)
"""

import pytest
from typing import Annotated, Dict, List, Literal, Optional

from taskvalet.agent.context import ConversationContext
from taskvalet.tool_decorator import _python_type_to_json_schema, tool
from taskvalet.tools.executor import execute_tool
from taskvalet.tools.models import ToolContext, ToolDefinition, ToolResult


def _context():
    return ToolContext(user_id="u1", conversation=ConversationContext(user_id="u1"))


# =========================================================================
# Type mapping
# =========================================================================


class TestTypeMapping:

    def test_basic_types(self):
        assert _python_type_to_json_schema(str) == {"type": "string"}
        assert _python_type_to_json_schema(int) == {"type": "integer"}
        assert _python_type_to_json_schema(float) == {"type": "number"}
        assert _python_type_to_json_schema(bool) == {"type": "boolean"}
        assert _python_type_to_json_schema(dict) == {"type": "object"}

    def test_optional_unwrapped(self):
        assert _python_type_to_json_schema(Optional[int]) == {"type": "integer"}

    def test_list_items(self):
        assert _python_type_to_json_schema(List[str]) == {
            "type": "array",
            "items": {"type": "string"},
        }

    def test_dict_generic(self):
        assert _python_type_to_json_schema(Dict[str, int]) == {"type": "object"}

    def test_literal_enum(self):
        assert _python_type_to_json_schema(Literal["action", "project"]) == {
            "type": "string",
            "enum": ["action", "project"],
        }

    def test_annotated_unwrapped(self):
        assert _python_type_to_json_schema(Annotated[int, "count"]) == {"type": "integer"}


# =========================================================================
# Decorator
# =========================================================================


class TestToolDecorator:

    def test_bare_decorator_builds_definition(self):
        @tool
        async def create_task(
            title: Annotated[str, "Clean task title"],
            type: Annotated[Literal["action", "project"], "GTD task type"],
            due_date: Annotated[Optional[str], "Due date (YYYY-MM-DD)"] = None,
            *,
            context: ToolContext,
        ) -> ToolResult:
            """Create a new task.

            Longer explanation that is not part of the description.
            """
            return ToolResult.ok()

        assert isinstance(create_task, ToolDefinition)
        assert create_task.name == "create_task"
        assert create_task.description == "Create a new task."
        assert create_task.parameters == {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Clean task title"},
                "type": {
                    "type": "string",
                    "enum": ["action", "project"],
                    "description": "GTD task type",
                },
                "due_date": {"type": "string", "description": "Due date (YYYY-MM-DD)"},
            },
            "required": ["title", "type"],
        }

    def test_name_and_description_overrides(self):
        @tool(name="lookup", description="Find tasks")
        async def lookup_tasks(*, context: ToolContext):
            return []

        assert lookup_tasks.name == "lookup"
        assert lookup_tasks.description == "Find tasks"
        assert lookup_tasks.parameters["required"] == []

    def test_no_docstring_uses_name(self):
        @tool
        async def ping(*, context):
            return "pong"

        assert ping.description == "ping"

    def test_unannotated_parameter_is_string(self):
        @tool
        async def note(text, *, context):
            return None

        assert note.parameters["properties"]["text"] == {"type": "string"}
        assert note.parameters["required"] == ["text"]


# =========================================================================
# Generated executor
# =========================================================================


class TestGeneratedExecutor:

    @pytest.mark.asyncio
    async def test_plain_return_wrapped_in_ok(self):
        @tool
        async def add(a: int, b: int = 1, *, context: ToolContext):
            """Add numbers"""
            return {"sum": a + b}

        result = await add.executor({"a": 2}, _context())
        assert result.success is True
        assert result.data == {"sum": 3}

    @pytest.mark.asyncio
    async def test_numeric_strings_coerced(self):
        @tool
        async def add(a: int, b: float, *, context: ToolContext):
            """Add numbers"""
            return {"sum": a + b}

        result = await add.executor({"a": "2", "b": "0.5"}, _context())
        assert result.data == {"sum": 2.5}

    @pytest.mark.asyncio
    async def test_tool_result_passed_through(self):
        @tool
        async def fail(*, context: ToolContext) -> ToolResult:
            """Always fails"""
            return ToolResult.fail("nope")

        result = await fail.executor({}, _context())
        assert result.error == "nope"

    @pytest.mark.asyncio
    async def test_context_is_injected(self):
        @tool
        async def whoami(*, context: ToolContext):
            """Report the user"""
            return context.user_id

        result = await whoami.executor({}, _context())
        assert result.data == "u1"

    @pytest.mark.asyncio
    async def test_extra_keys_ignored(self):
        @tool
        async def create_task(title: str, *, context: ToolContext):
            """Create a task"""
            return {"title": title}

        result = await execute_tool(
            create_task, {"title": "Buy milk", "reasoning": "asked"}, _context()
        )
        assert result.data == {"title": "Buy milk"}

    @pytest.mark.asyncio
    async def test_missing_required_rejected_by_executor(self):
        @tool
        async def create_task(title: str, *, context: ToolContext):
            """Create a task"""
            return {"title": title}

        result = await execute_tool(create_task, {}, _context())
        assert result.success is False
        assert result.error == "Missing required parameter: title"

    @pytest.mark.asyncio
    async def test_omitted_optional_without_default_is_none(self):
        @tool
        async def reschedule(task_id: str, due_date: Optional[str], *, context: ToolContext):
            """Move a task"""
            return {"task_id": task_id, "due_date": due_date}

        assert reschedule.parameters["required"] == ["task_id"]
        result = await execute_tool(reschedule, {"task_id": "t1"}, _context())
        assert result.success is True
        assert result.data == {"task_id": "t1", "due_date": None}
