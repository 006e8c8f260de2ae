"""
Agent prompts for the tool-enabled loop.

The LLM collaborator takes a single prompt string, so the system prompt,
tool instructions and the transcript are rendered into one document.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..tools.models import PersonReference, TaskReference, ToolDefinition
from ..tools.registry import format_tools_for_prompt
from .context import ConversationContext

SECTION_RULE = "═" * 63

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"


@dataclass
class TranscriptMessage:
    """One entry of the in-turn transcript."""
    role: str
    content: str


def _section(title: str) -> str:
    return f"{SECTION_RULE}\n{title}\n{SECTION_RULE}"


def _localize(now: datetime, timezone: str) -> datetime:
    try:
        return now.astimezone(ZoneInfo(timezone))
    except (ZoneInfoNotFoundError, ValueError):
        return now


def format_last_tasks(tasks: Sequence[TaskReference], limit: int = 5) -> str:
    if not tasks:
        return "(none)"
    return "\n".join(
        f'{i}. "{t.title}" ({t.type or "task"}, id: {t.id})'
        for i, t in enumerate(tasks[:limit], start=1)
    )


def format_last_people(people: Sequence[PersonReference], limit: int = 5) -> str:
    if not people:
        return "(none)"
    return "\n".join(f"- {p.name} (id: {p.id})" for p in people[:limit])


def build_system_prompt(
    tools: Iterable[ToolDefinition],
    timezone: str,
    now: datetime,
    conversation: Optional[ConversationContext] = None,
) -> str:
    """Build the assistant persona, current context and tool catalogue."""
    local = _localize(now, timezone)
    date_str = f"{local:%A}, {local:%B} {local.day}, {local.year}"
    time_str = f"{(local.hour % 12) or 12}:{local:%M} {'AM' if local.hour < 12 else 'PM'}"

    last_tasks = format_last_tasks(conversation.last_tasks if conversation else [])
    last_people = format_last_people(conversation.last_people if conversation else [])
    flow = ""
    if conversation is not None and conversation.active_flow is not None:
        flow = f"\nActive flow: {conversation.active_flow.value}\n"

    return f"""You are a GTD (Getting Things Done) assistant with access to tools.
You help users manage tasks, projects, and people via SMS.

{_section("CURRENT CONTEXT")}

Today: {date_str}
Time: {time_str}
Timezone: {timezone}
{flow}
Last referenced tasks (for "that", "the first one", etc.):
{last_tasks}

Last referenced people (for "their agenda", "them"):
{last_people}

{_section("AVAILABLE TOOLS")}

{format_tools_for_prompt(tools)}

{_section("GUIDELINES")}

1. CONTEXTUAL REFERENCES
   - "that", "it", "the first one" → use last referenced tasks
   - "them", "their agenda" → use last referenced people
   - Index 1 = first item shown to user

2. MULTI-STEP REQUESTS
   Look things up before changing them. Use IDs returned by earlier tools.

3. CLARIFICATION
   Only ask if truly necessary. Prefer smart defaults.

4. RESPONSE FORMAT
   - Keep it SMS-friendly and confirm actions taken
   - Number items in lists for easy reference

5. ERROR HANDLING
   If a tool fails, explain briefly in plain words and suggest what to do.
   Never expose technical errors to the user.

Now respond to the user's message."""


def build_tool_instructions(has_tool_results: bool, char_budget: int) -> str:
    """Instructions that depend on whether tools already ran this turn."""
    if has_tool_results:
        return f"""{_section("⚠️ RESPOND WITH PLAIN TEXT ONLY - NO JSON ⚠️")}

Tool execution is COMPLETE. Now provide your FINAL response as plain text.

STRICT RULES:
- NEVER output JSON, arrays like [...], or objects like {{...}}
- NEVER include field names like "response:", "message:", or "text:"
- NEVER return tool call syntax - tools have already been executed
- NEVER return array indices like [0] or ["0"] or [1, 2, 3]
- Write plain, natural text like a human texting back
- Keep it under {char_budget} characters

✓ CORRECT: ✅ Added: Buy groceries
✗ WRONG: {{"response": "Added: Buy groceries"}}
✗ WRONG: [{{"tool": "update_task", ...}}]

Summarize what happened based on the tool results above."""

    return f"""{_section("TOOL USAGE INSTRUCTIONS")}

To use a tool, respond with JSON in this exact format:
{{
  "tool_calls": [
    {{ "name": "tool_name", "parameters": {{ "param1": "value1" }} }}
  ]
}}

You can call multiple tools in one response; they run in order.
After tool results, provide a final text response to the user.

If you have all the information needed, respond with plain text (no JSON)."""


def render_transcript(messages: Sequence[TranscriptMessage]) -> str:
    blocks: List[str] = []
    for message in messages:
        if message.role == ROLE_USER:
            blocks.append(f"USER: {message.content}")
        elif message.role == ROLE_ASSISTANT:
            blocks.append(f"ASSISTANT: {message.content}")
        elif message.role == ROLE_TOOL:
            blocks.append(f"TOOL RESULTS:\n{message.content}")
    return "\n\n".join(blocks)


def build_full_prompt(
    system_prompt: str,
    messages: Sequence[TranscriptMessage],
    char_budget: int,
) -> str:
    """Assemble the prompt sent to the LLM for one iteration."""
    has_tool_results = any(m.role == ROLE_TOOL for m in messages)
    instructions = build_tool_instructions(has_tool_results, char_budget)

    return f"""{system_prompt}

{instructions}

{_section("CONVERSATION")}

{render_transcript(messages)}

ASSISTANT:"""
