"""
State store: the single source of truth for agents, rooms, messages,
relationships, and per-pair conversation windows.

Every mutation is a pure transformation of the current StoreSnapshot into a
new one. The new snapshot is swapped in under one lock, so readers always see
a complete snapshot: a message is never visible without its conversation
window update, and vice versa. Reads never take the lock; they grab the
current snapshot reference and work from it.

Usage pattern:
    store = StateStore()
    alice = store.add_agent(AgentSpec(name="Alice"))
    bob = store.add_agent(AgentSpec(name="Bob"))
    store.add_message(alice.agent_id, bob.agent_id, "Hi Bob!", Tone.FRIENDLY)
    store.set_relationship(alice.agent_id, bob.agent_id, 12)

Store events:
    Listeners registered with subscribe() receive a StoreEvent after each
    committed mutation. Listener failures are logged and never undo the
    mutation.

Nothing here survives the process: there is no persistence backend.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from pydantic import ValidationError

from .errors import ConfigurationError, InvariantViolationError
from .logging_utils import log_error
from .schemas import (
    Agent,
    AgentSpec,
    ConversationTurn,
    Message,
    Room,
    RoomSpec,
    Tone,
    TraitVector,
    utc_now,
)

MAIN_ROOM_ID = "main"
CONVERSATION_WINDOW_SIZE = 10

DEFAULT_MAIN_ROOM = Room(
    room_id=MAIN_ROOM_ID,
    name="Main Room",
    description="The default gathering space.",
)

# Store event kinds
AGENT_ADDED = "agent_added"
AGENT_REMOVED = "agent_removed"
AGENT_UPDATED = "agent_updated"
MESSAGE_ADDED = "message_added"
RELATIONSHIP_SET = "relationship_set"
AGENT_MOVED = "agent_moved"
ROOM_ADDED = "room_added"
ROOM_REMOVED = "room_removed"
ACTIVE_ROOM_CHANGED = "active_room_changed"

_EDITABLE_AGENT_FIELDS = {"name", "role", "backstory", "traits"}

RelationshipMap = Dict[str, Dict[str, int]]
ConversationMap = Dict[str, Dict[str, Tuple[ConversationTurn, ...]]]


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of the whole store at one point in time.

    Containers are never mutated after the snapshot is built; each mutation
    copies the containers it touches.
    """

    agents: Tuple[Agent, ...] = ()
    messages: Tuple[Message, ...] = ()
    relationships: RelationshipMap = field(default_factory=dict)
    conversations: ConversationMap = field(default_factory=dict)
    rooms: Tuple[Room, ...] = (DEFAULT_MAIN_ROOM,)
    active_room_id: str = MAIN_ROOM_ID

    def agent(self, agent_id: str) -> Optional[Agent]:
        return next((a for a in self.agents if a.agent_id == agent_id), None)

    def room(self, room_id: str) -> Optional[Room]:
        return next((r for r in self.rooms if r.room_id == room_id), None)

    def relationship(self, source_id: str, target_id: str) -> int:
        return self.relationships.get(source_id, {}).get(target_id, 0)

    def window(self, source_id: str, target_id: str) -> Tuple[ConversationTurn, ...]:
        return self.conversations.get(source_id, {}).get(target_id, ())


@dataclass(frozen=True)
class StoreEvent:
    """Notification delivered to store listeners after a committed mutation."""

    kind: str
    payload: Mapping[str, Any]
    snapshot: StoreSnapshot


StoreListener = Callable[[StoreEvent], None]


class StateStore:
    """Snapshot-swapping store with one mutation entry point per fact type.

    Args:
        id_factory: Callable producing opaque unique ids (uuid4 hex by default)
        clock: Callable producing creation timestamps (UTC now by default)
    """

    def __init__(
        self,
        *,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._clock = clock or utc_now
        self._snapshot = StoreSnapshot()
        # All writes serialize through this lock (the mutation queue).
        self._lock = threading.RLock()
        self._listeners: List[StoreListener] = []

    # ------------------------------------------------------------------
    # Snapshot plumbing
    # ------------------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        """Return the current immutable snapshot."""
        return self._snapshot

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener and return a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(
        self,
        transform: Callable[[StoreSnapshot], StoreSnapshot],
        kind: str,
        payload: Mapping[str, Any],
    ) -> StoreSnapshot:
        """Apply ``transform`` atomically and notify listeners."""
        with self._lock:
            new_snapshot = transform(self._snapshot)
            self._snapshot = new_snapshot

        event = StoreEvent(kind=kind, payload=dict(payload), snapshot=new_snapshot)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # pragma: no cover - diagnostic hook
                log_error(f"[Store] Listener failed on {kind}: {exc}")
        return new_snapshot

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def agents(self) -> List[Agent]:
        return list(self._snapshot.agents)

    @property
    def messages(self) -> List[Message]:
        return list(self._snapshot.messages)

    @property
    def rooms(self) -> List[Room]:
        return list(self._snapshot.rooms)

    @property
    def active_room_id(self) -> str:
        return self._snapshot.active_room_id

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._snapshot.agent(agent_id)

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._snapshot.room(room_id)

    def get_relationship(self, source_id: str, target_id: str) -> int:
        """Directed score from ``source_id`` toward ``target_id``; 0 when unset."""
        return self._snapshot.relationship(source_id, target_id)

    def relationships_of(self, agent_id: str) -> Dict[str, int]:
        """Copy of every directed score recorded from ``agent_id``."""
        return dict(self._snapshot.relationships.get(agent_id, {}))

    def conversation_window(self, source_id: str, target_id: str) -> List[ConversationTurn]:
        """Last (at most 10) turns exchanged between the pair, oldest first."""
        return list(self._snapshot.window(source_id, target_id))

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def add_agent(self, spec: Union[AgentSpec, Mapping[str, Any]]) -> Agent:
        """Create an agent from ``spec`` and return the stored record.

        Raises:
            ConfigurationError: If the input is malformed (empty name, traits out of
                range, unknown explicit location). State is left unchanged.
        """
        spec = _coerce(AgentSpec, spec)
        name = _require_text(spec.name, "Agent name")
        snapshot = self._snapshot
        if spec.location is not None and snapshot.room(spec.location) is None:
            raise ConfigurationError(f"Agent location '{spec.location}' is not a known room")

        agent = Agent(
            agent_id=self._id_factory(),
            name=name,
            role=spec.role.strip() or "Resident",
            backstory=spec.backstory.strip(),
            traits=spec.traits,
            created_at=self._clock(),
            location=spec.location,
        )

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            if current.agent(agent.agent_id) is not None:
                raise InvariantViolationError(f"Duplicate agent id {agent.agent_id}")
            # Resolve the location against the snapshot being replaced so a
            # concurrent set_active_room is honoured.
            stored = agent if agent.location else agent.model_copy(
                update={"location": current.active_room_id}
            )
            relationships = dict(current.relationships)
            relationships[stored.agent_id] = {}
            conversations = dict(current.conversations)
            conversations[stored.agent_id] = {}
            return replace(
                current,
                agents=current.agents + (stored,),
                relationships=relationships,
                conversations=conversations,
            )

        snapshot = self._commit(transform, AGENT_ADDED, {"agent_id": agent.agent_id})
        return snapshot.agent(agent.agent_id)

    def remove_agent(self, agent_id: str) -> None:
        """Remove an agent, its messages, and its conversation windows.

        Relationship scores are left in place; they are unreachable once the
        agent is gone from the agent list.
        """

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            if current.agent(agent_id) is None:
                raise InvariantViolationError(f"Unknown agent {agent_id}")
            conversations = {
                owner: {other: turns for other, turns in windows.items() if other != agent_id}
                for owner, windows in current.conversations.items()
                if owner != agent_id
            }
            return replace(
                current,
                agents=tuple(a for a in current.agents if a.agent_id != agent_id),
                messages=tuple(
                    m
                    for m in current.messages
                    if m.sender_id != agent_id and m.receiver_id != agent_id
                ),
                conversations=conversations,
            )

        self._commit(transform, AGENT_REMOVED, {"agent_id": agent_id})

    def update_agent(self, agent_id: str, **updates: Any) -> Agent:
        """Edit name, role, backstory, or traits of an existing agent.

        ``traits`` may be a TraitVector or a partial mapping merged over the
        current values.
        """
        unknown = set(updates) - _EDITABLE_AGENT_FIELDS
        if unknown:
            raise ConfigurationError(f"Cannot update agent fields: {sorted(unknown)}")

        current_agent = self._snapshot.agent(agent_id)
        if current_agent is None:
            raise InvariantViolationError(f"Unknown agent {agent_id}")

        changes: Dict[str, Any] = {}
        if "name" in updates:
            changes["name"] = _require_text(updates["name"], "Agent name")
        if "role" in updates:
            changes["role"] = str(updates["role"]).strip() or "Resident"
        if "backstory" in updates:
            changes["backstory"] = str(updates["backstory"]).strip()
        if "traits" in updates:
            traits = updates["traits"]
            if not isinstance(traits, TraitVector):
                merged = {**current_agent.traits.as_dict(), **dict(traits)}
                traits = _coerce(TraitVector, merged)
            changes["traits"] = traits

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            existing = current.agent(agent_id)
            if existing is None:
                raise InvariantViolationError(f"Unknown agent {agent_id}")
            updated = existing.model_copy(update=changes)
            return replace(
                current,
                agents=tuple(updated if a.agent_id == agent_id else a for a in current.agents),
            )

        snapshot = self._commit(
            transform, AGENT_UPDATED, {"agent_id": agent_id, "fields": sorted(changes)}
        )
        return snapshot.agent(agent_id)

    def move_agent(self, agent_id: str, room_id: str) -> None:
        """Relocate an agent to another room."""

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            existing = current.agent(agent_id)
            if existing is None:
                raise InvariantViolationError(f"Unknown agent {agent_id}")
            if current.room(room_id) is None:
                raise InvariantViolationError(f"Unknown room {room_id}")
            moved = existing.model_copy(update={"location": room_id})
            return replace(
                current,
                agents=tuple(moved if a.agent_id == agent_id else a for a in current.agents),
            )

        self._commit(transform, AGENT_MOVED, {"agent_id": agent_id, "room_id": room_id})

    # ------------------------------------------------------------------
    # Messages and relationships
    # ------------------------------------------------------------------

    def add_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        tone: Union[Tone, str],
    ) -> Message:
        """Append a message and record it in both directions' conversation windows."""
        tone = Tone(tone)
        message = Message(
            message_id=self._id_factory(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            tone=tone,
            timestamp=self._clock(),
        )

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            sender = current.agent(sender_id)
            if sender is None or current.agent(receiver_id) is None:
                raise InvariantViolationError(
                    f"Cannot add message between {sender_id} and {receiver_id}: agent missing"
                )
            if sender_id == receiver_id:
                raise InvariantViolationError("An agent cannot message itself")

            turn = ConversationTurn(
                speaker_id=sender_id,
                speaker_name=sender.name,
                content=content,
                tone=tone,
                timestamp=message.timestamp,
            )
            conversations = dict(current.conversations)
            for owner, other in ((sender_id, receiver_id), (receiver_id, sender_id)):
                windows = dict(conversations.get(owner, {}))
                windows[other] = (windows.get(other, ()) + (turn,))[-CONVERSATION_WINDOW_SIZE:]
                conversations[owner] = windows
            return replace(
                current,
                messages=current.messages + (message,),
                conversations=conversations,
            )

        self._commit(transform, MESSAGE_ADDED, {"message_id": message.message_id})
        return message

    def set_relationship(self, source_id: str, target_id: str, value: int) -> None:
        """Store ``value`` for the ordered pair only; callers write both directions."""
        value = int(value)

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            if source_id == target_id:
                raise InvariantViolationError("Self relationships are not tracked")
            if current.agent(source_id) is None or current.agent(target_id) is None:
                raise InvariantViolationError(
                    f"Cannot set relationship {source_id}->{target_id}: agent missing"
                )
            relationships = dict(current.relationships)
            row = dict(relationships.get(source_id, {}))
            row[target_id] = value
            relationships[source_id] = row
            return replace(current, relationships=relationships)

        self._commit(
            transform,
            RELATIONSHIP_SET,
            {"source_id": source_id, "target_id": target_id, "value": value},
        )

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def add_room(self, spec: Union[RoomSpec, Mapping[str, Any]]) -> Room:
        """Create a room; the id is generated unless ``room_id`` is given."""
        spec = _coerce(RoomSpec, spec)
        room = Room(
            room_id=spec.room_id or self._id_factory(),
            name=_require_text(spec.name, "Room name"),
            description=spec.description.strip(),
            storyboard=spec.storyboard,
        )
        if self._snapshot.room(room.room_id) is not None:
            raise ConfigurationError(f"Room id '{room.room_id}' already exists")

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            if current.room(room.room_id) is not None:
                raise ConfigurationError(f"Room id '{room.room_id}' already exists")
            return replace(current, rooms=current.rooms + (room,))

        self._commit(transform, ROOM_ADDED, {"room_id": room.room_id})
        return room

    def remove_room(self, room_id: str) -> None:
        """Remove a room, moving its agents to ``main``.

        Removing the active room makes ``main`` active.
        """
        if room_id == MAIN_ROOM_ID:
            raise InvariantViolationError("The main room cannot be removed")

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            if current.room(room_id) is None:
                raise InvariantViolationError(f"Unknown room {room_id}")
            agents = tuple(
                a.model_copy(update={"location": MAIN_ROOM_ID}) if a.location == room_id else a
                for a in current.agents
            )
            active = MAIN_ROOM_ID if current.active_room_id == room_id else current.active_room_id
            return replace(
                current,
                agents=agents,
                rooms=tuple(r for r in current.rooms if r.room_id != room_id),
                active_room_id=active,
            )

        previous_active = self._snapshot.active_room_id
        snapshot = self._commit(transform, ROOM_REMOVED, {"room_id": room_id})
        if snapshot.active_room_id != previous_active:
            self._notify_active_room(snapshot, previous_active)

    def set_active_room(self, room_id: str) -> None:
        """Select which room is simulated; re-selecting the active room is a no-op."""
        previous_active = self._snapshot.active_room_id
        if room_id == previous_active:
            return

        def transform(current: StoreSnapshot) -> StoreSnapshot:
            if current.room(room_id) is None:
                raise InvariantViolationError(f"Unknown room {room_id}")
            return replace(current, active_room_id=room_id)

        self._commit(
            transform,
            ACTIVE_ROOM_CHANGED,
            {"room_id": room_id, "previous_room_id": previous_active},
        )

    def _notify_active_room(self, snapshot: StoreSnapshot, previous_active: str) -> None:
        event = StoreEvent(
            kind=ACTIVE_ROOM_CHANGED,
            payload={"room_id": snapshot.active_room_id, "previous_room_id": previous_active},
            snapshot=snapshot,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # pragma: no cover - diagnostic hook
                log_error(f"[Store] Listener failed on {ACTIVE_ROOM_CHANGED}: {exc}")


def _coerce(model: type, value: Any) -> Any:
    """Build ``model`` from a mapping, translating validation errors."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid {model.__name__}: {exc}") from exc


def _require_text(value: Any, label: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ConfigurationError(f"{label} cannot be empty")
    return text


__all__ = [
    "MAIN_ROOM_ID",
    "CONVERSATION_WINDOW_SIZE",
    "StateStore",
    "StoreSnapshot",
    "StoreEvent",
    "StoreListener",
]
