"""Room/agent directory: a thin projection over the state store."""

from __future__ import annotations

from typing import Any, List, Mapping, Union

from .schemas import Agent, Room, RoomSpec
from .store import MAIN_ROOM_ID, StateStore


class Directory:
    """Answers "who is in which room" and forwards room edits to the store."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def agents_in_location(self, room_id: str) -> List[Agent]:
        """Live agents in ``room_id``; agents without a location count as in the active room."""
        snapshot = self.store.snapshot()
        active = snapshot.active_room_id
        return [a for a in snapshot.agents if (a.location or active) == room_id]

    def active_agents(self) -> List[Agent]:
        return self.agents_in_location(self.store.active_room_id)

    @property
    def active_room(self) -> Room:
        snapshot = self.store.snapshot()
        return snapshot.room(snapshot.active_room_id) or snapshot.room(MAIN_ROOM_ID)

    @property
    def rooms(self) -> List[Room]:
        return self.store.rooms

    def set_active_room(self, room_id: str) -> None:
        self.store.set_active_room(room_id)

    def add_room(self, spec: Union[RoomSpec, Mapping[str, Any]]) -> Room:
        return self.store.add_room(spec)

    def remove_room(self, room_id: str) -> None:
        """Remove a room; its agents move to ``main`` and ``main`` becomes active if needed."""
        self.store.remove_room(room_id)


__all__ = ["Directory"]
