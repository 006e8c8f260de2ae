"""Tests for taskvalet.result"""

from taskvalet.agent.context import ActiveFlow
from taskvalet.result import AgentResult, ToolCallRecord
from taskvalet.tools.models import TaskReference, ToolResult, UndoAction


def _result():
    return AgentResult(
        success=True,
        response="✅ Added: Buy milk",
        tool_calls=[
            ToolCallRecord("create_task", {"title": "Buy milk"}, ToolResult.ok(data={"id": "t1"})),
            ToolCallRecord("teleport", {}, ToolResult.fail("Unknown tool: teleport")),
        ],
        updated_context={
            "last_tasks": [TaskReference("t1", "Buy milk", "action")],
            "undo_stack": [UndoAction.delete_created("t1")],
            "last_created_id": "t1",
            "active_flow": ActiveFlow.CLARIFICATION,
        },
    )


class TestAgentResult:

    def test_tool_names(self):
        assert _result().tool_names == ["create_task", "teleport"]

    def test_failed_calls(self):
        assert [r.tool for r in _result().failed_calls()] == ["teleport"]

    def test_to_dict(self):
        data = _result().to_dict()

        assert data["success"] is True
        assert data["error"] is None
        assert data["tool_calls"][0] == {
            "tool": "create_task",
            "params": {"title": "Buy milk"},
            "result": {"success": True, "data": {"id": "t1"}},
        }
        assert data["tool_calls"][1]["result"] == {"success": False, "error": "Unknown tool: teleport"}
        assert data["updated_context"] == {
            "last_tasks": [{"id": "t1", "title": "Buy milk", "type": "action"}],
            "undo_stack": [{"type": "delete_created_item", "item_id": "t1"}],
            "last_created_id": "t1",
            "active_flow": "clarification",
        }

    def test_defaults(self):
        result = AgentResult(success=False, response="x", error="boom")
        assert result.tool_calls == []
        assert result.updated_context == {}
