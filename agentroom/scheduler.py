"""
Interaction scheduler: turns proximity events into two-turn exchanges.

Per unordered pair the scheduler runs a small state machine:

    IDLE --(proximate, cooldown expired, admitted)--> AWAITING_RESPONSE
    AWAITING_RESPONSE --(after response delay)--> IDLE

An admitted exchange runs as one asyncio task keyed by the pair:
1. Initiation: read the initiator->responder score, pick tone and delta,
   resolve an utterance, commit the message, write ``old + delta`` both ways.
2. Wait ``response_delay`` seconds.
3. Response: pick the response tone from the initiation tone and the
   responder's traits, resolve a reply with up to 10 turns of history,
   commit it, and apply the response delta both ways.

Admission is a semaphore policy layered over the pair machine. The default
size of 1 means one exchange in flight system-wide; offers made while it is
saturated are dropped silently. The cooldown (shared by both directions) is
recorded when an exchange is admitted.

Removing either agent cancels the pair's task through a store listener, and
both agents are re-validated before every commit, so no message ever
references a removed agent.
"""

from __future__ import annotations

import asyncio
import functools
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from .config import Config
from .errors import InvariantViolationError
from .logging_utils import log_deterministic, log_error, log_info, log_success
from .movement import ProximityEvent
from .relationships import (
    apply_delta,
    choose_response_tone,
    choose_tone,
    delta,
    response_delta,
)
from .schemas import Agent, Tone
from .store import AGENT_REMOVED, StateStore, StoreEvent
from .utterance import (
    TRANSCRIPT_LIMIT,
    FallbackUtteranceProvider,
    UtteranceContext,
    UtteranceProvider,
    UtteranceTurn,
    resolve_utterance,
)

PairKey = FrozenSet[str]


class PairState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


class OfferOutcome(str, Enum):
    """Result of offering a proximity event to the scheduler."""

    ADMITTED = "admitted"
    COOLDOWN = "cooldown"          # pair interacted too recently
    PAIR_BUSY = "pair_busy"        # pair already has an exchange in flight
    SATURATED = "saturated"        # admission policy is full
    UNKNOWN_AGENT = "unknown_agent"


class AdmissionPolicy:
    """Bounds how many exchanges may be in flight at once.

    Wraps an ``asyncio.Semaphore``; ``try_acquire`` never waits, so a
    saturated policy drops the request instead of queueing it.
    """

    def __init__(self, max_concurrent: int = 1) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def saturated(self) -> bool:
        return self._semaphore.locked()

    async def try_acquire(self) -> bool:
        if self._semaphore.locked():
            return False
        # An unlocked semaphore is acquired without suspending.
        await self._semaphore.acquire()
        return True

    def release(self) -> None:
        self._semaphore.release()


@dataclass
class ExchangeStats:
    started: int = 0
    completed: int = 0
    aborted: int = 0
    cancelled: int = 0


def pair_key(first_id: str, second_id: str) -> PairKey:
    return frozenset((first_id, second_id))


class InteractionScheduler:
    """Drives exchanges for proximate pairs and writes results to the store.

    Args:
        store: State store receiving messages and relationship writes
        provider: Optional remote utterance provider (fallback used when None)
        fallback: Local generator; created from ``rng`` when omitted
        rng: Random source for tones, deltas, and fallback phrases
        clock: Monotonic clock in seconds used for cooldowns
        cooldown: Minimum seconds between exchanges of the same pair
        response_delay: Seconds between initiation commit and response
        admission: Admission policy; defaults to ``MAX_CONCURRENT_EXCHANGES``
    """

    def __init__(
        self,
        store: StateStore,
        provider: Optional[UtteranceProvider] = None,
        *,
        fallback: Optional[FallbackUtteranceProvider] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        cooldown: Optional[float] = None,
        response_delay: Optional[float] = None,
        admission: Optional[AdmissionPolicy] = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self.rng = rng or random.Random()
        self.fallback = fallback or FallbackUtteranceProvider(self.rng)
        self.clock = clock
        self.cooldown = Config.INTERACTION_COOLDOWN_SECONDS if cooldown is None else cooldown
        self.response_delay = (
            Config.RESPONSE_DELAY_SECONDS if response_delay is None else response_delay
        )
        self.admission = admission or AdmissionPolicy(Config.MAX_CONCURRENT_EXCHANGES)
        self.stats = ExchangeStats()

        self._cooldowns: Dict[PairKey, float] = {}
        self._states: Dict[PairKey, PairState] = {}
        self._tasks: Dict[PairKey, asyncio.Task] = {}
        self._unsubscribe = store.subscribe(self._on_store_event)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def pair_state(self, first_id: str, second_id: str) -> PairState:
        return self._states.get(pair_key(first_id, second_id), PairState.IDLE)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def last_interaction(self, first_id: str, second_id: str) -> Optional[float]:
        return self._cooldowns.get(pair_key(first_id, second_id))

    def reset_cooldowns(self) -> None:
        """Forget every cooldown (used when the active room changes)."""
        self._cooldowns.clear()

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def _cooldown_expired(self, key: PairKey, now: float) -> bool:
        last = self._cooldowns.get(key)
        return last is None or now - last > self.cooldown

    async def offer(self, event: ProximityEvent) -> OfferOutcome:
        """Start an exchange for ``event`` if the pair and policy allow it.

        Never waits for generation; the exchange runs in its own task.
        """
        initiator_id, responder_id = event.initiator_id, event.responder_id
        key = pair_key(initiator_id, responder_id)
        if len(key) != 2:
            return OfferOutcome.UNKNOWN_AGENT

        snapshot = self.store.snapshot()
        if snapshot.agent(initiator_id) is None or snapshot.agent(responder_id) is None:
            return OfferOutcome.UNKNOWN_AGENT
        if key in self._tasks:
            return OfferOutcome.PAIR_BUSY

        now = self.clock()
        if not self._cooldown_expired(key, now):
            return OfferOutcome.COOLDOWN
        if not await self.admission.try_acquire():
            return OfferOutcome.SATURATED

        self._cooldowns[key] = now
        self._states[key] = PairState.AWAITING_RESPONSE
        self.stats.started += 1
        task = asyncio.create_task(
            self._run_exchange(initiator_id, responder_id),
            name=f"exchange:{initiator_id}:{responder_id}",
        )
        self._tasks[key] = task
        # A done callback also fires for a task cancelled before its first step.
        task.add_done_callback(functools.partial(self._finish_exchange, key))
        return OfferOutcome.ADMITTED

    # ------------------------------------------------------------------
    # Exchange
    # ------------------------------------------------------------------

    async def _run_exchange(self, initiator_id: str, responder_id: str) -> None:
        try:
            initial_tone = await self._initiate(initiator_id, responder_id)
            await asyncio.sleep(self.response_delay)
            await self._respond(initiator_id, responder_id, initial_tone)
            self.stats.completed += 1
        except InvariantViolationError as exc:
            self.stats.aborted += 1
            log_error(f"[Scheduler] Exchange aborted: {exc}")

    def _finish_exchange(self, key: PairKey, task: asyncio.Task) -> None:
        self._states.pop(key, None)
        if self._tasks.get(key) is task:
            del self._tasks[key]
        self.admission.release()
        if task.cancelled():
            self.stats.cancelled += 1
            log_info("[Scheduler] Pending exchange cancelled")
        elif task.exception() is not None:
            log_error(f"[Scheduler] Exchange failed: {task.exception()!r}")

    def _require_agents(self, *agent_ids: str) -> Tuple[Agent, ...]:
        snapshot = self.store.snapshot()
        agents = []
        for agent_id in agent_ids:
            agent = snapshot.agent(agent_id)
            if agent is None:
                raise InvariantViolationError(f"Agent {agent_id} is no longer present")
            agents.append(agent)
        return tuple(agents)

    def _transcript(self, first_id: str, second_id: str) -> Tuple[Tuple[str, str], ...]:
        window = self.store.conversation_window(first_id, second_id)[-TRANSCRIPT_LIMIT:]
        return tuple((turn.speaker_name, turn.content) for turn in window)

    def _write_symmetric(self, first_id: str, second_id: str, value: int) -> None:
        self.store.set_relationship(first_id, second_id, value)
        self.store.set_relationship(second_id, first_id, value)

    async def _initiate(self, initiator_id: str, responder_id: str) -> Tone:
        initiator, responder = self._require_agents(initiator_id, responder_id)
        score = self.store.get_relationship(initiator_id, responder_id)
        tone = choose_tone(score, initiator.traits, responder.traits, self.rng)
        change = delta(tone, self.rng)
        log_deterministic(
            f"[Scheduler] {initiator.name} -> {responder.name}: score {score}, tone {tone.value}, delta {change:+d}"
        )

        context = UtteranceContext(
            speaker=initiator,
            listener=responder,
            tone=tone,
            relationship_score=score,
            turn=UtteranceTurn.INITIATION,
            transcript=self._transcript(initiator_id, responder_id),
        )
        utterance = await resolve_utterance(context, self.provider, self.fallback)

        self._require_agents(initiator_id, responder_id)
        self.store.add_message(initiator_id, responder_id, utterance.content, tone)
        self._write_symmetric(initiator_id, responder_id, apply_delta(score, change))
        log_success(f"[{tone.value}] {initiator.name} -> {responder.name}: {utterance.content}")
        return tone

    async def _respond(self, initiator_id: str, responder_id: str, initial_tone: Tone) -> None:
        responder, initiator = self._require_agents(responder_id, initiator_id)
        tone = choose_response_tone(initial_tone, responder.traits, self.rng)
        change = response_delta(tone, self.rng)
        score = self.store.get_relationship(responder_id, initiator_id)
        log_deterministic(
            f"[Scheduler] {responder.name} replies to {initiator.name}: tone {tone.value}, delta {change:+d}"
        )

        context = UtteranceContext(
            speaker=responder,
            listener=initiator,
            tone=tone,
            relationship_score=score,
            turn=UtteranceTurn.RESPONSE,
            initial_tone=initial_tone,
            transcript=self._transcript(responder_id, initiator_id),
        )
        utterance = await resolve_utterance(context, self.provider, self.fallback)

        self._require_agents(responder_id, initiator_id)
        self.store.add_message(responder_id, initiator_id, utterance.content, tone)
        # Same direction as the context score.
        current = self.store.get_relationship(responder_id, initiator_id)
        self._write_symmetric(initiator_id, responder_id, apply_delta(current, change))
        log_success(f"[{tone.value}] {responder.name} -> {initiator.name}: {utterance.content}")

    # ------------------------------------------------------------------
    # Cancellation and shutdown
    # ------------------------------------------------------------------

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.kind != AGENT_REMOVED:
            return
        agent_id = event.payload["agent_id"]
        for key in [k for k in self._cooldowns if agent_id in k]:
            del self._cooldowns[key]
        for key, task in list(self._tasks.items()):
            if agent_id in key and not task.done():
                _cancel_task(task)

    async def wait_idle(self) -> None:
        """Wait until no exchange is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
            await asyncio.sleep(0)

    async def shutdown(self) -> None:
        """Cancel outstanding exchanges and stop listening to the store."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._unsubscribe()


def _cancel_task(task: asyncio.Task) -> None:
    """Cancel ``task`` from whichever thread the store mutation ran on."""
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    loop = task.get_loop()
    if running is loop:
        task.cancel()
    else:
        loop.call_soon_threadsafe(task.cancel)


__all__ = [
    "PairState",
    "OfferOutcome",
    "AdmissionPolicy",
    "ExchangeStats",
    "InteractionScheduler",
    "pair_key",
]
