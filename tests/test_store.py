"""Tests for the snapshot-swapping state store."""

import pytest

from agentroom.errors import ConfigurationError, InvariantViolationError
from agentroom.schemas import AgentSpec, RoomSpec, Tone, TraitVector
from agentroom.store import (
    CONVERSATION_WINDOW_SIZE,
    MAIN_ROOM_ID,
    StateStore,
)


def make_pair(store: StateStore):
    alice = store.add_agent(AgentSpec(name="Alice"))
    bob = store.add_agent(AgentSpec(name="Bob"))
    return alice, bob


def test_new_store_has_permanent_main_room():
    store = StateStore()
    assert [room.room_id for room in store.rooms] == [MAIN_ROOM_ID]
    assert store.active_room_id == MAIN_ROOM_ID


def test_add_agent_assigns_id_time_and_active_room():
    store = StateStore()
    lab = store.add_room(RoomSpec(name="Lab"))
    store.set_active_room(lab.room_id)

    agent = store.add_agent({"name": "  Alice  ", "role": ""})

    assert agent.agent_id
    assert agent.name == "Alice"
    assert agent.role == "Resident"
    assert agent.location == lab.room_id
    assert agent.created_at.tzinfo is not None
    assert store.relationships_of(agent.agent_id) == {}


def test_add_agent_rejects_empty_name_without_mutation():
    store = StateStore()
    before = store.snapshot()

    with pytest.raises(ConfigurationError):
        store.add_agent(AgentSpec(name="   "))

    assert store.snapshot() is before


def test_add_agent_rejects_out_of_range_traits():
    store = StateStore()
    with pytest.raises(ConfigurationError):
        store.add_agent({"name": "Alice", "traits": {"aggression": 1.5}})
    assert store.agents == []


def test_unset_relationship_is_zero():
    store = StateStore()
    alice, bob = make_pair(store)
    assert store.get_relationship(alice.agent_id, bob.agent_id) == 0
    assert store.get_relationship("ghost", "phantom") == 0


def test_set_relationship_is_directed():
    store = StateStore()
    alice, bob = make_pair(store)

    store.set_relationship(alice.agent_id, bob.agent_id, 12)

    assert store.get_relationship(alice.agent_id, bob.agent_id) == 12
    assert store.get_relationship(bob.agent_id, alice.agent_id) == 0


def test_set_relationship_rejects_self_pair():
    store = StateStore()
    alice, _ = make_pair(store)
    with pytest.raises(InvariantViolationError):
        store.set_relationship(alice.agent_id, alice.agent_id, 5)


def test_conversation_window_keeps_latest_ten_in_order():
    store = StateStore()
    alice, bob = make_pair(store)

    for index in range(15):
        sender, receiver = (alice, bob) if index % 2 == 0 else (bob, alice)
        store.add_message(sender.agent_id, receiver.agent_id, f"line {index}", Tone.NEUTRAL)
        window = store.conversation_window(alice.agent_id, bob.agent_id)
        assert len(window) == min(CONVERSATION_WINDOW_SIZE, index + 1)

    window = store.conversation_window(alice.agent_id, bob.agent_id)
    assert [turn.content for turn in window] == [f"line {i}" for i in range(5, 15)]
    assert window == store.conversation_window(bob.agent_id, alice.agent_id)
    assert window[-1].speaker_name == "Alice"


def test_message_and_window_become_visible_together():
    store = StateStore()
    alice, bob = make_pair(store)
    seen = []

    def listener(event):
        snapshot = event.snapshot
        seen.append((len(snapshot.messages), len(snapshot.window(alice.agent_id, bob.agent_id))))

    store.subscribe(listener)
    store.add_message(alice.agent_id, bob.agent_id, "Hi", Tone.FRIENDLY)
    store.add_message(bob.agent_id, alice.agent_id, "Hello", Tone.FRIENDLY)

    assert seen == [(1, 1), (2, 2)]


def test_snapshots_are_not_mutated_by_later_writes():
    store = StateStore()
    alice, bob = make_pair(store)
    before = store.snapshot()

    store.add_message(alice.agent_id, bob.agent_id, "Hi", "friendly")
    store.set_relationship(alice.agent_id, bob.agent_id, 9)

    assert before.messages == ()
    assert before.relationship(alice.agent_id, bob.agent_id) == 0
    assert before.window(alice.agent_id, bob.agent_id) == ()


def test_add_message_requires_live_agents():
    store = StateStore()
    alice, bob = make_pair(store)
    store.remove_agent(bob.agent_id)

    with pytest.raises(InvariantViolationError):
        store.add_message(alice.agent_id, bob.agent_id, "Anyone?", Tone.NEUTRAL)
    assert store.messages == []


def test_remove_agent_cascades_messages_and_windows():
    store = StateStore()
    alice, bob = make_pair(store)
    carol = store.add_agent(AgentSpec(name="Carol"))
    store.add_message(alice.agent_id, bob.agent_id, "Hi Bob", Tone.FRIENDLY)
    store.add_message(carol.agent_id, alice.agent_id, "Hi Alice", Tone.NEUTRAL)
    store.set_relationship(alice.agent_id, bob.agent_id, 10)

    store.remove_agent(bob.agent_id)

    assert store.get_agent(bob.agent_id) is None
    assert all(bob.agent_id not in (m.sender_id, m.receiver_id) for m in store.messages)
    assert [m.content for m in store.messages] == ["Hi Alice"]
    assert bob.agent_id not in store.snapshot().conversations[alice.agent_id]
    assert bob.agent_id not in store.snapshot().conversations


def test_remove_unknown_agent_raises():
    store = StateStore()
    with pytest.raises(InvariantViolationError):
        store.remove_agent("missing")


def test_update_agent_merges_partial_traits():
    store = StateStore()
    alice = store.add_agent(
        AgentSpec(name="Alice", traits=TraitVector(friendliness=0.9, aggression=0.1))
    )

    updated = store.update_agent(alice.agent_id, name="Alicia", traits={"aggression": 0.4})

    assert updated.name == "Alicia"
    assert updated.traits.friendliness == 0.9
    assert updated.traits.aggression == 0.4
    assert store.get_agent(alice.agent_id) == updated


def test_update_agent_rejects_unknown_fields():
    store = StateStore()
    alice = store.add_agent(AgentSpec(name="Alice"))
    with pytest.raises(ConfigurationError):
        store.update_agent(alice.agent_id, location="elsewhere")


def test_remove_room_moves_agents_to_main_and_resets_active():
    store = StateStore()
    kitchen = store.add_room(RoomSpec(name="Kitchen"))
    store.set_active_room(kitchen.room_id)
    cook = store.add_agent(AgentSpec(name="Cook"))
    events = []
    store.subscribe(lambda event: events.append(event.kind))

    store.remove_room(kitchen.room_id)

    assert store.get_agent(cook.agent_id).location == MAIN_ROOM_ID
    assert store.active_room_id == MAIN_ROOM_ID
    assert events == ["room_removed", "active_room_changed"]


def test_main_room_cannot_be_removed():
    store = StateStore()
    with pytest.raises(InvariantViolationError):
        store.remove_room(MAIN_ROOM_ID)


def test_move_agent_to_unknown_room_raises():
    store = StateStore()
    alice = store.add_agent(AgentSpec(name="Alice"))
    with pytest.raises(InvariantViolationError):
        store.move_agent(alice.agent_id, "nowhere")
    assert store.get_agent(alice.agent_id).location == MAIN_ROOM_ID


def test_add_room_rejects_duplicate_id():
    store = StateStore()
    store.add_room(RoomSpec(name="Lab", room_id="lab"))
    with pytest.raises(ConfigurationError):
        store.add_room({"name": "Other lab", "room_id": "lab"})


def test_failing_listener_does_not_undo_mutation():
    store = StateStore()

    def broken(event):
        raise RuntimeError("boom")

    store.subscribe(broken)
    alice = store.add_agent(AgentSpec(name="Alice"))

    assert store.get_agent(alice.agent_id) is not None


def test_unsubscribe_stops_notifications():
    store = StateStore()
    events = []
    unsubscribe = store.subscribe(lambda event: events.append(event.kind))

    store.add_agent(AgentSpec(name="Alice"))
    unsubscribe()
    store.add_agent(AgentSpec(name="Bob"))

    assert events == ["agent_added"]


def test_reselecting_active_room_is_silent():
    store = StateStore()
    lab = store.add_room(RoomSpec(name="Lab"))
    store.set_active_room(lab.room_id)
    before = store.snapshot()
    events = []
    store.subscribe(lambda event: events.append(event.kind))

    store.set_active_room(lab.room_id)

    assert events == []
    assert store.snapshot() is before
