"""Read-only analysis helpers over messages and relationships."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from .relationships import classify
from .schemas import Message, Tone
from .store import StateStore

RESPONSE_WINDOW_SECONDS = 10.0


@dataclass
class ConversationThread:
    """An initial message and the reverse-direction replies that followed it."""

    initial: Message
    responses: List[Message] = field(default_factory=list)


@dataclass(frozen=True)
class RelationshipRow:
    first_id: str
    second_id: str
    first_name: str
    second_name: str
    score: float
    label: str
    message_count: int


def _replies_to(reply: Message, message: Message, window_seconds: float) -> bool:
    if reply.sender_id != message.receiver_id or reply.receiver_id != message.sender_id:
        return False
    elapsed = (reply.timestamp - message.timestamp).total_seconds()
    return 0 < elapsed < window_seconds


def conversation_threads(
    messages: Sequence[Message],
    agent_ids: Optional[Iterable[str]] = None,
    window_seconds: float = RESPONSE_WINDOW_SECONDS,
) -> List[ConversationThread]:
    """Group messages into threads, sorted by the initial message's timestamp.

    A message is a reply when the counterpart wrote to its sender less than
    ``window_seconds`` earlier. With ``agent_ids``, only messages whose sender
    and receiver are both in the set are considered.
    """
    if agent_ids is not None:
        allowed = set(agent_ids)
        messages = [m for m in messages if m.sender_id in allowed and m.receiver_id in allowed]

    threads: List[ConversationThread] = []
    claimed = set()
    for message in messages:
        if message.message_id in claimed:
            continue
        if any(_replies_to(message, earlier, window_seconds) for earlier in messages):
            continue
        thread = ConversationThread(initial=message)
        for reply in messages:
            if reply.message_id not in claimed and _replies_to(reply, message, window_seconds):
                thread.responses.append(reply)
                claimed.add(reply.message_id)
        claimed.add(message.message_id)
        threads.append(thread)

    # Replies whose initial message was itself a reply become threads of their own.
    for message in messages:
        if message.message_id not in claimed:
            threads.append(ConversationThread(initial=message))
            claimed.add(message.message_id)

    threads.sort(key=lambda thread: thread.initial.timestamp)
    return threads


def interaction_counts(messages: Iterable[Message]) -> Dict[FrozenSet[str], int]:
    """Messages exchanged per unordered pair."""
    return dict(Counter(frozenset((m.sender_id, m.receiver_id)) for m in messages))


def tone_breakdown(messages: Iterable[Message]) -> Dict[Tone, int]:
    counts = {tone: 0 for tone in Tone}
    for message in messages:
        counts[message.tone] += 1
    return counts


def relationship_table(store: StateStore) -> List[RelationshipRow]:
    """Mean of both directed scores per live pair, strongest first."""
    snapshot = store.snapshot()
    counts = interaction_counts(snapshot.messages)
    rows = []
    for first, second in combinations(snapshot.agents, 2):
        score = (
            snapshot.relationship(first.agent_id, second.agent_id)
            + snapshot.relationship(second.agent_id, first.agent_id)
        ) / 2
        rows.append(
            RelationshipRow(
                first_id=first.agent_id,
                second_id=second.agent_id,
                first_name=first.name,
                second_name=second.name,
                score=score,
                label=classify(score).label,
                message_count=counts.get(frozenset((first.agent_id, second.agent_id)), 0),
            )
        )
    rows.sort(key=lambda row: row.score, reverse=True)
    return rows


__all__ = [
    "RESPONSE_WINDOW_SECONDS",
    "ConversationThread",
    "RelationshipRow",
    "conversation_threads",
    "interaction_counts",
    "tone_breakdown",
    "relationship_table",
]
