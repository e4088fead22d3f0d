"""
Quickstart: load a scenario and let the agents wander for a while
=================================================================

WHAT THIS SHOWS:
- Loading a JSON scenario into a StateStore
- Running the frame loop with the local fallback generator (no API key needed)
- Reading the message log and relationship table afterwards

Set LLM_PROVIDER (plus its API key) to generate dialogue with a model instead.

RUN:
    python -m examples.quickstart.run [scenario] [ticks]
"""

import asyncio
import random
import sys

from agentroom import (
    Config,
    LLMUtteranceProvider,
    ScenarioLoader,
    Simulation,
    StateStore,
    conversation_threads,
    relationship_table,
    tone_breakdown,
)


async def main(scenario: str = "rivals", ticks: int = 900) -> None:
    Config.validate()
    print(Config.display())
    print()

    rng = random.Random(7)
    store = StateStore()
    ScenarioLoader(rng=rng).load(scenario, store)

    provider = LLMUtteranceProvider() if Config.provider_configured() else None
    # Small room so collisions happen quickly.
    sim = Simulation(store, provider, width=320, height=240, rng=rng)
    try:
        await sim.run(ticks, tick_interval=Config.TICK_INTERVAL_SECONDS)
    finally:
        await sim.close()

    names = {agent.agent_id: agent.name for agent in store.agents}
    print("\n=== Conversations ===")
    for thread in conversation_threads(store.messages):
        initial = thread.initial
        print(f"{names[initial.sender_id]} ({initial.tone.value}): {initial.content}")
        for reply in thread.responses:
            print(f"    {names[reply.sender_id]} ({reply.tone.value}): {reply.content}")

    print("\n=== Tones ===")
    for tone, count in tone_breakdown(store.messages).items():
        print(f"  {tone.value}: {count}")

    print("\n=== Relationships ===")
    for row in relationship_table(store):
        print(f"  {row.first_name} / {row.second_name}: {row.score:+.1f} ({row.label})")


if __name__ == "__main__":
    scenario_name = sys.argv[1] if len(sys.argv) > 1 else "rivals"
    num_ticks = int(sys.argv[2]) if len(sys.argv) > 2 else 900
    asyncio.run(main(scenario_name, num_ticks))
