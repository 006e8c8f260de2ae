"""
TaskValet Tool Models - Data structures for LLM tool calling

Defines the tool contract (ToolDefinition), the calls the LLM emits
(ToolCall), what a tool body returns (ToolResult) and the side-effect
bookkeeping carried by a result (UndoAction, TrackedEntities).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from ..agent.context import ConversationContext


# JSON types a parameter schema may declare
SCHEMA_TYPES = ("string", "number", "integer", "boolean", "array", "object")


@dataclass
class TaskReference:
    """Reference to a task for follow-ups ("that one", "the first one")."""
    id: str
    title: str
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "type": self.type}


@dataclass
class PersonReference:
    """Reference to a person for follow-ups ("them", "their agenda")."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class TrackedEntities:
    """
    Entities a tool result asks the conversation context to remember.

    Attributes:
        tasks: Tasks just shown or created (replaces the previous list)
        people: People just looked up (replaces the previous list)
        last_created_id: ID of the item the tool just created
    """
    tasks: Optional[List[TaskReference]] = None
    people: Optional[List[PersonReference]] = None
    last_created_id: Optional[str] = None


class UndoActionType(str, Enum):
    """Kinds of reversible side effects"""
    DELETE_CREATED_ITEM = "delete_created_item"
    RESTORE_DELETED_ITEM = "restore_deleted_item"
    REVERT_UPDATE = "revert_update"
    UNCOMPLETE = "uncomplete"
    RESTORE_REMOVED_ENTITY = "restore_removed_entity"


@dataclass
class UndoAction:
    """
    Reversal recipe for one side-effecting tool result.

    Each variant carries exactly what is needed to reverse the effect
    without re-querying the system of record:

    - DELETE_CREATED_ITEM: item_id
    - RESTORE_DELETED_ITEM: snapshot (full item data)
    - REVERT_UPDATE: item_id + previous_values (fields before the update)
    - UNCOMPLETE: item_id
    - RESTORE_REMOVED_ENTITY: snapshot (full entity data, e.g. a person)

    Use the classmethod constructors rather than building variants by hand.
    """
    type: UndoActionType
    item_id: Optional[str] = None
    snapshot: Optional[Dict[str, Any]] = None
    previous_values: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        self.type = UndoActionType(self.type)
        if self.type in (UndoActionType.DELETE_CREATED_ITEM, UndoActionType.UNCOMPLETE):
            if not self.item_id:
                raise ValueError(f"{self.type.value} requires item_id")
        elif self.type in (UndoActionType.RESTORE_DELETED_ITEM, UndoActionType.RESTORE_REMOVED_ENTITY):
            if not self.snapshot:
                raise ValueError(f"{self.type.value} requires snapshot")
        elif self.type == UndoActionType.REVERT_UPDATE:
            if not self.item_id or self.previous_values is None:
                raise ValueError("revert_update requires item_id and previous_values")

    @classmethod
    def delete_created(cls, item_id: str) -> "UndoAction":
        return cls(UndoActionType.DELETE_CREATED_ITEM, item_id=item_id)

    @classmethod
    def restore_deleted(cls, snapshot: Dict[str, Any]) -> "UndoAction":
        return cls(UndoActionType.RESTORE_DELETED_ITEM, snapshot=dict(snapshot))

    @classmethod
    def revert_update(cls, item_id: str, previous_values: Dict[str, Any]) -> "UndoAction":
        return cls(UndoActionType.REVERT_UPDATE, item_id=item_id, previous_values=dict(previous_values))

    @classmethod
    def uncomplete(cls, item_id: str) -> "UndoAction":
        return cls(UndoActionType.UNCOMPLETE, item_id=item_id)

    @classmethod
    def restore_removed_entity(cls, snapshot: Dict[str, Any]) -> "UndoAction":
        return cls(UndoActionType.RESTORE_REMOVED_ENTITY, snapshot=dict(snapshot))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.item_id is not None:
            data["item_id"] = self.item_id
        if self.snapshot is not None:
            data["snapshot"] = self.snapshot
        if self.previous_values is not None:
            data["previous_values"] = self.previous_values
        return data


@dataclass
class ToolResult:
    """
    Result of a tool execution

    Attributes:
        success: Whether the tool did what was asked
        data: Structured payload fed back to the LLM (success only)
        error: Error message (failure only)
        undo_action: How to reverse this result's side effect
        track_entities: Entities to remember for follow-up messages

    A failed result never carries data and always carries an error;
    a successful result never carries an error.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    undo_action: Optional[UndoAction] = None
    track_entities: Optional[TrackedEntities] = None

    def __post_init__(self):
        if self.success:
            if self.error is not None:
                raise ValueError("A successful ToolResult cannot carry an error")
        else:
            if self.data is not None:
                raise ValueError("A failed ToolResult cannot carry data")
            if not self.error:
                self.error = "Unknown error"

    @classmethod
    def ok(
        cls,
        data: Any = None,
        undo_action: Optional[UndoAction] = None,
        track_entities: Optional[TrackedEntities] = None,
    ) -> "ToolResult":
        return cls(success=True, data=data, undo_action=undo_action, track_entities=track_entities)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error
        if self.undo_action is not None:
            result["undo_action"] = self.undo_action.to_dict()
        return result


@dataclass
class ToolCall:
    """
    A tool call parsed from an LLM response

    Attributes:
        name: Tool name the LLM selected
        parameters: Raw parameters, not yet validated
    """
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolContext:
    """
    Context passed to every tool body

    Attributes:
        user_id: User the turn belongs to
        conversation: The user's conversation context (mutated by the executor)
        timezone: User's IANA timezone
        services: Collaborator clients (task store, people store, ...) that
            only tool bodies use
    """
    user_id: str
    conversation: "ConversationContext"
    timezone: str = "UTC"
    services: Dict[str, Any] = field(default_factory=dict)


ToolExecutorFn = Callable[[Dict[str, Any], ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    Immutable tool descriptor.

    Attributes:
        name: Unique snake_case name the LLM uses to select the tool
        description: What the tool does (shown in the prompt)
        parameters: Restricted JSON Schema for the tool's parameters
        executor: async (params, context) -> ToolResult
    """
    name: str
    description: str
    parameters: Dict[str, Any]
    executor: ToolExecutorFn

    @property
    def properties(self) -> Dict[str, Dict[str, Any]]:
        return self.parameters.get("properties") or {}

    @property
    def required(self) -> List[str]:
        return list(self.parameters.get("required") or [])

    def to_prompt_block(self) -> str:
        """Render the tool as a catalogue entry for the system prompt."""
        lines = []
        required = set(self.required)
        for name, schema in self.properties.items():
            req = " (required)" if name in required else ""
            enum_values = schema.get("enum")
            enum_str = f" [{'|'.join(str(v) for v in enum_values)}]" if enum_values else ""
            lines.append(f"    - {name}: {schema.get('description', '')}{req}{enum_str}")
        params = "\n".join(lines) if lines else "    (none)"
        return f"{self.name}:\n  {self.description}\n  Parameters:\n{params}"
