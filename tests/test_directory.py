from agentroom.directory import Directory
from agentroom.schemas import AgentSpec, RoomSpec
from agentroom.store import MAIN_ROOM_ID, StateStore


def test_agents_are_grouped_by_room():
    store = StateStore()
    directory = Directory(store)
    lab = directory.add_room(RoomSpec(name="Lab"))
    alice = store.add_agent(AgentSpec(name="Alice"))
    bob = store.add_agent(AgentSpec(name="Bob"))
    store.move_agent(bob.agent_id, lab.room_id)

    assert [a.agent_id for a in directory.active_agents()] == [alice.agent_id]
    assert [a.agent_id for a in directory.agents_in_location(lab.room_id)] == [bob.agent_id]

    directory.set_active_room(lab.room_id)
    assert directory.active_room.room_id == lab.room_id
    assert [a.agent_id for a in directory.active_agents()] == [bob.agent_id]


def test_removing_room_returns_agents_to_main():
    store = StateStore()
    directory = Directory(store)
    lab = directory.add_room({"name": "Lab"})
    directory.set_active_room(lab.room_id)
    bob = store.add_agent(AgentSpec(name="Bob"))

    directory.remove_room(lab.room_id)

    assert [room.room_id for room in directory.rooms] == [MAIN_ROOM_ID]
    assert directory.active_room.room_id == MAIN_ROOM_ID
    assert [a.agent_id for a in directory.active_agents()] == [bob.agent_id]
