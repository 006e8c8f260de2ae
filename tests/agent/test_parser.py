"""Tests for taskvalet.agent.parser — LLM response parsing and repair"""

import json

import pytest

from taskvalet.agent.parser import (
    TextResponse,
    ToolCallsResponse,
    format_task_list,
    parse_response,
    repair_tool_call,
    strip_code_fences,
    synthesize_from_tool_calls,
    to_tool_call,
)
from taskvalet.constants import (
    FALLBACK_RESPONSE,
    INDEX_ARRAY_RESPONSE,
    SYNTHESIS_FALLBACK_RESPONSE,
)
from taskvalet.result import ToolCallRecord
from taskvalet.tools.models import ToolCall, ToolResult


# ── helpers ──


def _record(tool, data=None, error=None):
    result = ToolResult.fail(error) if error else ToolResult.ok(data=data)
    return ToolCallRecord(tool=tool, params={}, result=result)


def _text(parsed):
    assert isinstance(parsed, TextResponse), parsed
    return parsed.content


def _calls(parsed):
    assert isinstance(parsed, ToolCallsResponse), parsed
    return parsed.calls


# =========================================================================
# Plain text and fences
# =========================================================================


class TestPlainText:

    def test_plain_text_passes_through(self):
        parsed = parse_response("✅ Added: Buy milk")
        assert parsed.type == "text"
        assert _text(parsed) == "✅ Added: Buy milk"

    def test_whitespace_trimmed(self):
        assert _text(parse_response("  hello \n")) == "hello"

    def test_empty_response_falls_back(self):
        assert _text(parse_response("")) == FALLBACK_RESPONSE
        assert _text(parse_response("   ")) == FALLBACK_RESPONSE

    def test_strip_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_bare_fence(self):
        assert strip_code_fences("```\nhello\n```") == "hello"

    def test_fenced_tool_call(self):
        raw = '```json\n{"tool_calls": [{"name": "lookup_tasks", "parameters": {}}]}\n```'
        calls = _calls(parse_response(raw))
        assert calls == [ToolCall("lookup_tasks", {})]


# =========================================================================
# Tool calls
# =========================================================================


class TestToolCalls:

    def test_tool_calls_object(self):
        raw = json.dumps({
            "tool_calls": [
                {"name": "create_task", "parameters": {"title": "Buy milk", "type": "action"}},
                {"name": "lookup_tasks", "parameters": {"status": "open"}},
            ]
        })
        parsed = parse_response(raw)
        assert parsed.type == "tool_calls"
        assert _calls(parsed) == [
            ToolCall("create_task", {"title": "Buy milk", "type": "action"}),
            ToolCall("lookup_tasks", {"status": "open"}),
        ]

    def test_tool_key_and_params_alias(self):
        raw = '{"tool_calls": [{"tool": "create_task", "params": {"title": "x"}}]}'
        assert _calls(parse_response(raw)) == [ToolCall("create_task", {"title": "x"})]

    def test_openai_function_shape(self):
        raw = json.dumps({
            "tool_calls": [
                {"type": "function", "function": {"name": "lookup_people", "arguments": '{"name": "Sam"}'}}
            ]
        })
        assert _calls(parse_response(raw)) == [ToolCall("lookup_people", {"name": "Sam"})]

    def test_missing_parameters_default_to_empty(self):
        raw = '{"tool_calls": [{"name": "lookup_tasks"}]}'
        assert _calls(parse_response(raw)) == [ToolCall("lookup_tasks", {})]

    def test_single_call_without_wrapper(self):
        raw = '{"tool": "complete_task", "parameters": {"taskId": "t1"}}'
        assert _calls(parse_response(raw)) == [ToolCall("complete_task", {"taskId": "t1"})]

    def test_array_of_calls(self):
        raw = '[{"tool": "complete_task", "parameters": {"taskId": "t1"}}]'
        assert _calls(parse_response(raw)) == [ToolCall("complete_task", {"taskId": "t1"})]

    def test_tool_calls_embedded_in_prose(self):
        raw = (
            "Sure, let me look that up.\n"
            '{"tool_calls": [{"name": "lookup_tasks", "parameters": {"status": "open"}}]}'
        )
        assert _calls(parse_response(raw)) == [ToolCall("lookup_tasks", {"status": "open"})]

    def test_to_tool_call_strict_rejects_records(self):
        assert to_tool_call({"name": "Sam", "id": "p1"}) is None
        assert to_tool_call({"name": "Sam", "id": "p1"}, strict=False) == ToolCall("Sam", {})

    def test_array_call_with_extra_fields(self):
        raw = '[{"name": "create_task", "parameters": {"title": "Buy milk"}, "id": "call_1"}]'
        assert _calls(parse_response(raw)) == [ToolCall("create_task", {"title": "Buy milk"})]

    def test_single_call_with_extra_fields(self):
        raw = '{"name": "create_task", "parameters": {"title": "Buy milk"}, "reasoning": "user asked"}'
        parsed = parse_response(raw)
        assert parsed.type == "tool_calls"
        assert _calls(parsed) == [ToolCall("create_task", {"title": "Buy milk"})]

    def test_name_only_array_item_is_a_call(self):
        assert _calls(parse_response('[{"name": "lookup_tasks"}]')) == [ToolCall("lookup_tasks", {})]

    def test_to_tool_call_non_dict(self):
        assert to_tool_call("create_task") is None


# =========================================================================
# JSON objects that are really answers
# =========================================================================


class TestObjectAnswers:

    @pytest.mark.parametrize("key", ["response", "message", "text", "content", "reply", "data"])
    def test_text_fields(self, key):
        assert _text(parse_response(json.dumps({key: "Added: Buy milk"}))) == "Added: Buy milk"

    def test_nested_message(self):
        raw = '{"data": {"message": "All done"}}'
        assert _text(parse_response(raw)) == "All done"

    def test_success_flag(self):
        assert _text(parse_response('{"success": true}')) == "✅ Done!"

    def test_error_flag(self):
        raw = '{"success": false, "error": "Task not found"}'
        assert _text(parse_response(raw)) == "❌ Error: Task not found"

    def test_title_becomes_added(self):
        assert _text(parse_response('{"title": "Buy milk"}')) == "Added: Buy milk"

    def test_nested_task_title(self):
        raw = '{"task": {"id": "t1", "title": "Call Sam"}}'
        assert _text(parse_response(raw)) == "Added: Call Sam"

    def test_person_record_is_not_a_tool_call(self):
        assert _text(parse_response('{"name": "Sam", "id": "p1"}')) == "Added: Sam"

    def test_tasks_list(self):
        raw = json.dumps({"tasks": [{"title": "Buy milk"}, {"content": "Call Sam"}]})
        assert _text(parse_response(raw)) == "📋 Tasks:\n1. Buy milk\n2. Call Sam"

    def test_empty_tasks_list(self):
        assert _text(parse_response('{"tasks": []}')) == "✅ No tasks found."

    def test_count(self):
        assert _text(parse_response('{"count": 3}')) == "Found 3 item(s)."

    def test_unknown_structure_falls_back(self):
        assert _text(parse_response('{"foo": 1, "bar": [2]}')) == FALLBACK_RESPONSE

    def test_text_field_holding_json_falls_back(self):
        raw = json.dumps({"response": '{"tool": "x"}'})
        assert _text(parse_response(raw)) == FALLBACK_RESPONSE


# =========================================================================
# JSON arrays that are really answers
# =========================================================================


class TestArrayAnswers:

    def test_index_array(self):
        assert _text(parse_response("[0]")) == INDEX_ARRAY_RESPONSE
        assert _text(parse_response('["0", "1"]')) == INDEX_ARRAY_RESPONSE
        assert _text(parse_response("[1, 2, 3]")) == INDEX_ARRAY_RESPONSE

    def test_string_array_joined(self):
        assert _text(parse_response('["Buy milk", "Call Sam"]')) == "Buy milk, Call Sam"

    def test_array_of_text_objects(self):
        assert _text(parse_response('[{"text": "Hi there"}]')) == "Hi there"

    def test_empty_array(self):
        assert _text(parse_response("[]")) == FALLBACK_RESPONSE

    def test_mixed_array_falls_back(self):
        assert _text(parse_response('[["a"], {"b": 1}]')) == FALLBACK_RESPONSE

    def test_booleans_are_not_indices(self):
        assert _text(parse_response("[true, false]")) == FALLBACK_RESPONSE


# =========================================================================
# Malformed JSON
# =========================================================================


class TestMalformedJson:

    def test_truncated_tool_call_repaired(self):
        raw = '{"tool_calls": [{"name": "create_task", "parameters": {"title": "Buy mi'
        calls = _calls(parse_response(raw))
        assert calls == [ToolCall("create_task", {"title": "Buy mi"})]

    def test_repair_collects_known_keys(self):
        raw = (
            '{"tool": "create_task", "parameters": {"title": "Call Sam", '
            '"type": "action", "dueDate": "2026-10-20", "personName": "Sam", "context": "@phone"'
        )
        call = repair_tool_call(raw)
        assert call.name == "create_task"
        assert call.parameters == {
            "title": "Call Sam",
            "type": "action",
            "dueDate": "2026-10-20",
            "personName": "Sam",
            "context": "@phone",
        }

    def test_repair_needs_a_parameter(self):
        assert repair_tool_call('{"tool": "lookup_tasks", "parameters": {') is None

    def test_repair_needs_a_name(self):
        assert repair_tool_call('{"parameters": {"title": "x"') is None

    def test_malformed_without_markers_falls_back(self):
        assert _text(parse_response('{"answer": "oops')) == FALLBACK_RESPONSE

    def test_unrepairable_without_results_falls_back(self):
        assert _text(parse_response('{"tool_calls": [{"name": "lookup_tasks"')) == FALLBACK_RESPONSE

    def test_unrepairable_with_results_synthesizes(self):
        prior = [_record("lookup_tasks", {"tasks": [{"title": "Buy milk", "dueString": "today"}]})]
        parsed = parse_response('{"tool_calls": [{"name": "x"', True, prior)
        assert _text(parsed) == "📋 Tasks:\n1. Buy milk (today)"


# =========================================================================
# Synthesis
# =========================================================================


class TestSynthesis:

    def test_tasks_capped_at_five(self):
        tasks = [{"title": f"Task {i}"} for i in range(1, 8)]
        text = synthesize_from_tool_calls([_record("lookup_tasks", {"tasks": tasks})])
        assert text.splitlines()[-1] == "5. Task 5"

    def test_no_tasks(self):
        assert synthesize_from_tool_calls([_record("lookup_tasks", {"tasks": []})]) == "📋 No tasks found."

    def test_people(self):
        people = [{"name": "Sam"}, {"name": "Alex"}]
        assert synthesize_from_tool_calls([_record("lookup_people", {"people": people})]) == "Found 2 person(s)."

    def test_no_people(self):
        assert synthesize_from_tool_calls([_record("lookup_people", {"people": []})]) == "👤 No people found."

    def test_uses_last_record(self):
        records = [_record("lookup_people", {"people": []}), _record("create_task", {"id": "t1"})]
        assert synthesize_from_tool_calls(records) == SYNTHESIS_FALLBACK_RESPONSE

    def test_failed_last_record(self):
        assert synthesize_from_tool_calls([_record("lookup_tasks", error="boom")]) == SYNTHESIS_FALLBACK_RESPONSE


# =========================================================================
# format_task_list
# =========================================================================


class TestFormatTaskList:

    def test_more_suffix(self):
        tasks = [{"title": f"T{i}"} for i in range(12)]
        text = format_task_list(tasks)
        assert text.startswith("📋 Tasks:\n1. T0")
        assert text.endswith("10. T9\n...and 2 more")

    def test_untitled_item(self):
        assert format_task_list([{"id": "t1"}]) == "📋 Tasks:\n1. Task"


# =========================================================================
# Text never looks like raw structure
# =========================================================================


class TestNoRawStructure:

    @pytest.mark.parametrize(
        "raw",
        [
            "[0]",
            "[]",
            "{}",
            '{"response": "[1, 2]"}',
            '{"unexpected": true}',
            '["[nested]"]',
            '[{"text": "{x}"}]',
            "{broken",
            "[broken",
            '```json\n{"foo": "bar"}\n```',
            '{"tool_calls": []}',
        ],
    )
    def test_text_never_starts_with_bracket(self, raw):
        for has_results in (False, True):
            parsed = parse_response(raw, has_results, [_record("x", {"id": "1"})])
            if isinstance(parsed, TextResponse):
                assert parsed.content
                assert not parsed.content.lstrip().startswith(("{", "["))
