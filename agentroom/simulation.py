"""
Simulation host.

Wires the directory, movement engine, and interaction scheduler around one
state store. Each frame:
1. Sync kinematics with the agents in the active room
2. Advance positions one tick (wall bounces included)
3. Detect proximate pairs
4. Offer each pair to the scheduler (exchanges run in their own tasks)
5. Invoke tick listeners

Frames never wait on utterance generation. Switching the active room drops
every position and cooldown, so agents re-spawn at random positions.
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import Config
from .directory import Directory
from .logging_utils import log_deterministic, log_error, log_info
from .movement import MovementEngine, ProximityEvent
from .scheduler import AdmissionPolicy, InteractionScheduler, OfferOutcome
from .store import ACTIVE_ROOM_CHANGED, AGENT_MOVED, AGENT_REMOVED, StateStore, StoreEvent
from .utterance import UtteranceProvider

TickListener = Callable[[int, List[ProximityEvent]], None]


@dataclass(frozen=True)
class SimulationSummary:
    ticks: int
    messages_produced: int
    exchanges_started: int
    exchanges_completed: int


class Simulation:
    """Frame loop around the interaction engine.

    All dependencies are injected; anything omitted falls back to Config.
    """

    def __init__(
        self,
        store: StateStore,
        provider: Optional[UtteranceProvider] = None,
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        cooldown: Optional[float] = None,
        response_delay: Optional[float] = None,
        max_concurrent_exchanges: Optional[int] = None,
        tick_listeners: Optional[List[TickListener]] = None,
    ):
        self.store = store
        self.rng = rng or random.Random()
        self.directory = Directory(store)
        self.movement = MovementEngine(
            width if width is not None else Config.ROOM_WIDTH,
            height if height is not None else Config.ROOM_HEIGHT,
            rng=self.rng,
        )
        admission = AdmissionPolicy(
            max_concurrent_exchanges
            if max_concurrent_exchanges is not None
            else Config.MAX_CONCURRENT_EXCHANGES
        )
        self.scheduler = InteractionScheduler(
            store,
            provider,
            rng=self.rng,
            clock=clock,
            cooldown=cooldown,
            response_delay=response_delay,
            admission=admission,
        )
        self.tick_listeners = tick_listeners or []
        self.tick_count = 0
        self._unsubscribe = store.subscribe(self._on_store_event)

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.kind == ACTIVE_ROOM_CHANGED:
            log_deterministic(f"[Simulation] Active room is now {event.payload['room_id']}")
            self.movement.reset()
            self.scheduler.reset_cooldowns()
        elif event.kind in (AGENT_MOVED, AGENT_REMOVED):
            # A room change restarts the agent's kinematics.
            self.movement.forget(event.payload["agent_id"])

    async def step(self) -> List[ProximityEvent]:
        """Run one frame and return the proximity events it produced."""
        self.tick_count += 1
        tick = self.tick_count

        self.movement.sync(agent.agent_id for agent in self.directory.active_agents())
        self.movement.tick()
        events = self.movement.detect_proximity()

        for event in events:
            outcome = await self.scheduler.offer(event)
            if outcome is OfferOutcome.ADMITTED:
                log_deterministic(
                    f"[Simulation] Tick {tick}: exchange admitted for {event.initiator_id} and {event.responder_id}"
                )

        for listener in self.tick_listeners:
            try:
                listener(tick, events)
            except Exception as exc:  # pragma: no cover - diagnostic hook
                log_error(f"[Simulation] Tick listener failed: {exc}")
        return events

    async def run(
        self,
        num_ticks: int,
        tick_interval: Optional[float] = None,
        *,
        drain: bool = True,
    ) -> SimulationSummary:
        """Run ``num_ticks`` frames, sleeping ``tick_interval`` seconds between them.

        With ``drain`` the call returns only after in-flight exchanges finish.
        """
        interval = Config.TICK_INTERVAL_SECONDS if tick_interval is None else tick_interval
        messages_before = len(self.store.messages)
        started_before = self.scheduler.stats.started
        completed_before = self.scheduler.stats.completed

        log_info(
            f"Starting simulation: {len(self.directory.active_agents())} agent(s) in "
            f"'{self.directory.active_room.name}', {num_ticks} tick(s)"
        )
        for _ in range(num_ticks):
            await self.step()
            await asyncio.sleep(interval)

        if drain:
            await self.scheduler.wait_idle()

        summary = SimulationSummary(
            ticks=num_ticks,
            messages_produced=len(self.store.messages) - messages_before,
            exchanges_started=self.scheduler.stats.started - started_before,
            exchanges_completed=self.scheduler.stats.completed - completed_before,
        )
        log_info(
            f"Simulation finished: {summary.exchanges_started} exchange(s) started, "
            f"{summary.messages_produced} message(s)"
        )
        return summary

    async def close(self) -> None:
        """Cancel outstanding exchanges and detach from the store."""
        await self.scheduler.shutdown()
        self._unsubscribe()


__all__ = ["Simulation", "SimulationSummary", "TickListener"]
