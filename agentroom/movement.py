"""Movement and collision engine for the active room.

Kinematics live in an arena keyed by agent id. The engine never reads the
store: the host calls ``sync`` with the ids present in the active room, then
``tick`` and ``detect_proximity`` once per frame.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .logging_utils import log_deterministic

SPRITE_SIZE = 60.0
INTERACTION_DISTANCE = 60.0
MAX_SPEED = 2.0


@dataclass
class Kinematics:
    """Position (top-left corner) and per-tick velocity of one agent."""

    x: float
    y: float
    vx: float
    vy: float


@dataclass(frozen=True)
class ProximityEvent:
    """Two agents closer than the interaction distance during one tick.

    ``initiator_id`` is the agent observed first in the arena.
    """

    initiator_id: str
    responder_id: str
    distance: float

    @property
    def pair(self) -> frozenset:
        return frozenset((self.initiator_id, self.responder_id))


class MovementEngine:
    """Bounded random-walk movement with elastic wall bounces.

    Args:
        width: Room width in units
        height: Room height in units
        sprite_size: Agent extent; positions stay in ``[0, extent - sprite_size]``
        max_speed: Initial velocity is uniform in ``[-max_speed, max_speed]`` per axis
        rng: Random source for initial placement
        interaction_distance: Center distance below which a pair is proximate
    """

    def __init__(
        self,
        width: float,
        height: float,
        *,
        sprite_size: float = SPRITE_SIZE,
        max_speed: float = MAX_SPEED,
        rng: Optional[random.Random] = None,
        interaction_distance: float = INTERACTION_DISTANCE,
    ) -> None:
        self.width = float(width)
        self.height = float(height)
        self.sprite_size = float(sprite_size)
        self.max_speed = float(max_speed)
        self.interaction_distance = float(interaction_distance)
        self.rng = rng or random.Random()
        self._arena: Dict[str, Kinematics] = {}

    @property
    def max_x(self) -> float:
        return max(0.0, self.width - self.sprite_size)

    @property
    def max_y(self) -> float:
        return max(0.0, self.height - self.sprite_size)

    @property
    def agent_ids(self) -> List[str]:
        return list(self._arena)

    def __len__(self) -> int:
        return len(self._arena)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._arena

    def sync(self, agent_ids: Iterable[str]) -> None:
        """Match the arena to ``agent_ids``.

        Newly observed agents get a random position and velocity; agents no
        longer present are purged. Existing entries are untouched.
        """
        present = list(dict.fromkeys(agent_ids))
        keep = set(present)
        for agent_id in [a for a in self._arena if a not in keep]:
            del self._arena[agent_id]
        for agent_id in present:
            if agent_id not in self._arena:
                self._arena[agent_id] = self._spawn()

    def _spawn(self) -> Kinematics:
        return Kinematics(
            x=self.rng.uniform(0.0, self.max_x),
            y=self.rng.uniform(0.0, self.max_y),
            vx=self.rng.uniform(-self.max_speed, self.max_speed),
            vy=self.rng.uniform(-self.max_speed, self.max_speed),
        )

    def tick(self) -> None:
        """Advance every agent by its velocity, bouncing off the walls."""
        for state in self._arena.values():
            state.x, state.vx = _advance(state.x, state.vx, self.max_x)
            state.y, state.vy = _advance(state.y, state.vy, self.max_y)

    def detect_proximity(self) -> List[ProximityEvent]:
        """Every unordered pair closer than the interaction distance, once each."""
        events: List[ProximityEvent] = []
        items = list(self._arena.items())
        for index, (first_id, first) in enumerate(items):
            for second_id, second in items[index + 1:]:
                distance = math.hypot(first.x - second.x, first.y - second.y)
                if distance < self.interaction_distance:
                    events.append(ProximityEvent(first_id, second_id, distance))
        return events

    def reset(self) -> None:
        """Forget every position; the next ``sync`` re-spawns all agents."""
        if self._arena:
            log_deterministic(f"[Movement] Reset {len(self._arena)} agent position(s)")
        self._arena.clear()

    def forget(self, agent_id: str) -> None:
        """Drop one agent's kinematics; it re-spawns if a later ``sync`` lists it."""
        self._arena.pop(agent_id, None)

    def position_of(self, agent_id: str) -> Optional[Kinematics]:
        state = self._arena.get(agent_id)
        if state is None:
            return None
        return Kinematics(state.x, state.y, state.vx, state.vy)

    def place(
        self,
        agent_id: str,
        x: float,
        y: float,
        vx: float = 0.0,
        vy: float = 0.0,
    ) -> None:
        """Put an agent at an explicit position, clamped to the room bounds."""
        self._arena[agent_id] = Kinematics(
            x=min(max(float(x), 0.0), self.max_x),
            y=min(max(float(y), 0.0), self.max_y),
            vx=float(vx),
            vy=float(vy),
        )

    def resize(self, width: float, height: float) -> None:
        """Change the room bounds and pull every agent back inside them."""
        self.width = float(width)
        self.height = float(height)
        for state in self._arena.values():
            state.x = min(max(state.x, 0.0), self.max_x)
            state.y = min(max(state.y, 0.0), self.max_y)


def _advance(position: float, velocity: float, upper: float) -> tuple:
    position += velocity
    if position < 0.0 or position > upper:
        position = min(max(position, 0.0), upper)
        velocity = -velocity
    return position, velocity


__all__ = [
    "SPRITE_SIZE",
    "INTERACTION_DISTANCE",
    "MAX_SPEED",
    "Kinematics",
    "ProximityEvent",
    "MovementEngine",
]
