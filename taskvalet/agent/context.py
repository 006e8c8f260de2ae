"""
TaskValet Conversation Context - short-lived per-user memory

Tracks what the user just saw (tasks, people), the last created item,
a bounded undo stack and an optional multi-turn flow, so follow-up
messages like "complete the first one" or "undo that" can be resolved.

Storage Backends:
- MemoryContextStore: in-process dict (default; lost on restart)

Contexts expire passively: expiry is checked when a context is read and
an optional cleanup pass removes stale entries. There is no locking;
two concurrent turns for the same user race on the same context (last
writer wins). Message ingestion is expected to serialize per user.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..constants import CONTEXT_TTL_SECONDS, MAX_TRACKED_ENTITIES, MAX_UNDO_STACK
from ..tools.models import PersonReference, TaskReference, TrackedEntities, UndoAction

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActiveFlow(str, Enum):
    """Multi-turn flows a conversation can be in"""
    WEEKLY_REVIEW = "weekly_review"
    BULK_CONFIRM = "bulk_confirm"
    CLARIFICATION = "clarification"
    BRAIN_DUMP = "brain_dump"


# Fields a partial update may carry
CONTEXT_FIELDS = (
    "last_tasks",
    "last_people",
    "last_created_id",
    "undo_stack",
    "active_flow",
    "flow_state",
)

# Caps applied to list fields on every write
FIELD_LIMITS = {
    "last_tasks": MAX_TRACKED_ENTITIES,
    "last_people": MAX_TRACKED_ENTITIES,
    "undo_stack": MAX_UNDO_STACK,
}


@dataclass
class ConversationContext:
    """
    Per-user conversation state.

    Attributes:
        user_id: Owner of the context
        last_tasks: Most recently referenced tasks, newest lookup wins (max 10)
        last_people: Most recently referenced people (max 10)
        last_created_id: ID of the last item a tool created
        undo_stack: Reversible actions, most recent first (max 5)
        active_flow: Multi-turn flow in progress, if any
        flow_state: Flow-specific state
        updated_at: Last update time
        expires_at: When the context stops being valid
    """
    user_id: str
    last_tasks: List[TaskReference] = field(default_factory=list)
    last_people: List[PersonReference] = field(default_factory=list)
    last_created_id: Optional[str] = None
    undo_stack: List[UndoAction] = field(default_factory=list)
    active_flow: Optional[ActiveFlow] = None
    flow_state: Any = None
    updated_at: datetime = field(default_factory=_utcnow)
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        if self.expires_at is None:
            self.expires_at = self.updated_at + timedelta(seconds=CONTEXT_TTL_SECONDS)
        if self.active_flow is not None:
            self.active_flow = ActiveFlow(self.active_flow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or _utcnow())

    def track(self, entities: TrackedEntities) -> None:
        """Apply tracked entities: lists are replaced, never appended."""
        if entities.tasks is not None:
            self.last_tasks = list(entities.tasks)[:MAX_TRACKED_ENTITIES]
        if entities.people is not None:
            self.last_people = list(entities.people)[:MAX_TRACKED_ENTITIES]
        if entities.last_created_id is not None:
            self.last_created_id = entities.last_created_id

    def push_undo(self, action: UndoAction) -> None:
        self.undo_stack = [action] + self.undo_stack[: MAX_UNDO_STACK - 1]

    def pop_undo(self) -> Optional[UndoAction]:
        if not self.undo_stack:
            return None
        action, self.undo_stack = self.undo_stack[0], self.undo_stack[1:]
        return action

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the mutable fields, usable as a partial update."""
        return {name: copy.copy(getattr(self, name)) for name in CONTEXT_FIELDS}


class ContextStore(ABC):
    """
    Abstract base class for conversation context storage.

    Backends implement get/update/clear; the convenience operations are
    built on top of them.
    """

    @abstractmethod
    async def get(self, user_id: str) -> ConversationContext:
        """
        Get the user's context, creating a fresh one if absent or expired.

        Args:
            user_id: User ID

        Returns:
            The live ConversationContext
        """
        pass

    @abstractmethod
    async def update(self, user_id: str, updates: Dict[str, Any]) -> ConversationContext:
        """
        Merge a partial update into the user's context and reset its TTL.

        Only keys present in ``updates`` are applied, so an explicit
        ``None`` clears a field (e.g. ``active_flow``). List fields are
        trimmed to FIELD_LIMITS, keeping the leading (newest) items.

        Args:
            user_id: User ID
            updates: Mapping of field name to new value

        Returns:
            The updated ConversationContext
        """
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> bool:
        """
        Drop the user's context.

        Returns:
            True if a context was removed
        """
        pass

    def cleanup_expired(self) -> int:
        """Remove expired contexts. Backends with native expiry keep the default."""
        return 0

    async def set_last_tasks(self, user_id: str, tasks: List[TaskReference]) -> None:
        await self.update(user_id, {"last_tasks": list(tasks)})

    async def set_last_people(self, user_id: str, people: List[PersonReference]) -> None:
        await self.update(user_id, {"last_people": list(people)})

    async def push_undo(self, user_id: str, action: UndoAction) -> None:
        context = await self.get(user_id)
        await self.update(user_id, {"undo_stack": [action] + context.undo_stack})

    async def pop_undo(self, user_id: str) -> Optional[UndoAction]:
        context = await self.get(user_id)
        if not context.undo_stack:
            return None
        action, rest = context.undo_stack[0], context.undo_stack[1:]
        await self.update(user_id, {"undo_stack": rest})
        return action

    async def start_flow(self, user_id: str, flow: ActiveFlow, initial_state: Any = None) -> None:
        await self.update(user_id, {"active_flow": ActiveFlow(flow), "flow_state": initial_state})

    async def end_flow(self, user_id: str) -> None:
        await self.update(user_id, {"active_flow": None, "flow_state": None})


class MemoryContextStore(ContextStore):
    """
    In-memory context storage.

    All data is lost when the process exits, which only means follow-up
    references have to be asked again.

    Args:
        ttl: Time-to-live from creation or last update
        clock: Returns the current time (injectable for tests)
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(seconds=CONTEXT_TTL_SECONDS),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._contexts: Dict[str, ConversationContext] = {}
        self.ttl = ttl
        self._clock = clock or _utcnow

    def __len__(self) -> int:
        return len(self._contexts)

    def _new_context(self, user_id: str) -> ConversationContext:
        now = self._clock()
        return ConversationContext(user_id=user_id, updated_at=now, expires_at=now + self.ttl)

    async def get(self, user_id: str) -> ConversationContext:
        context = self._contexts.get(user_id)
        if context is not None and not context.is_expired(self._clock()):
            return context

        if context is not None:
            logger.debug(f"Conversation context for {user_id} expired, starting fresh")
        context = self._new_context(user_id)
        self._contexts[user_id] = context
        return context

    async def update(self, user_id: str, updates: Dict[str, Any]) -> ConversationContext:
        context = await self.get(user_id)

        for key, value in updates.items():
            if key not in CONTEXT_FIELDS:
                logger.warning(f"Ignoring unknown conversation context field: {key}")
                continue
            if key == "active_flow" and value is not None:
                value = ActiveFlow(value)
            elif key in FIELD_LIMITS and value is not None:
                value = list(value)[: FIELD_LIMITS[key]]
            setattr(context, key, value)

        now = self._clock()
        context.updated_at = now
        context.expires_at = now + self.ttl
        self._contexts[user_id] = context
        return context

    async def clear(self, user_id: str) -> bool:
        return self._contexts.pop(user_id, None) is not None

    def cleanup_expired(self) -> int:
        """
        Remove expired contexts.

        Returns:
            Number of contexts removed
        """
        now = self._clock()
        expired = [uid for uid, ctx in self._contexts.items() if ctx.is_expired(now)]
        for user_id in expired:
            del self._contexts[user_id]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired conversation contexts")
        return len(expired)
