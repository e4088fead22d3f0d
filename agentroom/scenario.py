"""
Scenario loading for JSON-defined rooms.

A scenario describes one room, the agents that start in it, and optional
initial relationships. Loading validates the whole file before touching the
store, so a malformed scenario leaves the store unchanged.

Scenario file structure:
```json
{
  "name": "High School Classroom",
  "description": "An educational setting ...",
  "storyboard": "First period is about to start ...",
  "room_id": "classroom",
  "agents": [
    {"name": "Ms. Rivera", "role": "Teacher", "backstory": "...",
     "traits": {"friendliness": 0.7, "aggression": 0.2}},
    {"name": "Jordan", "preset": "aggressive", "role": "Troublemaker"}
  ],
  "relationships": [
    {"source": "Ms. Rivera", "target": "Jordan", "score": -30, "symmetric": true}
  ]
}
```

Usage:
    store = StateStore()
    room = ScenarioLoader().load("classroom", store)
"""

import json
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .config import Config
from .errors import ConfigurationError
from .logging_utils import log_info
from .presets import (
    ARCHETYPES,
    PERSONALITY_PRESETS,
    ROOM_TEMPLATES,
    agent_spec_from_preset,
    template_agent_specs,
)
from .schemas import AgentSpec, Room, RoomSpec
from .store import StateStore


class ScenarioLoader:
    """Load and validate room scenarios from JSON files.

    Directory structure:
    - Default: ``Config.SCENARIOS_DIR`` ({PROJECT_ROOT}/examples/scenarios/)
    - Scenario files: {scenario_name}.json; names starting with ``_`` are hidden

    Validation:
    - Required fields: name, description, agents
    - At least one agent; agent names unique within the scenario
    - Each agent needs a name and either ``traits`` or a known ``preset``
    - Relationship entries must reference agents of the same scenario
    - Raises ConfigurationError (a ValueError) when validation fails
    """

    def __init__(self, scenarios_dir: Optional[Path] = None, rng: Optional[random.Random] = None):
        self.scenarios_dir = Path(scenarios_dir) if scenarios_dir else Config.SCENARIOS_DIR
        self.rng = rng or random.Random()

    def _read(self, scenario_name: str) -> Dict[str, Any]:
        scenario_path = self.scenarios_dir / f"{scenario_name}.json"
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario '{scenario_name}' not found at {scenario_path}")
        return json.loads(scenario_path.read_text())

    def load(self, scenario_name: str, store: StateStore, *, activate: bool = True) -> Room:
        """Create the scenario's room and agents in ``store``.

        Args:
            scenario_name: File name without the .json extension
            store: Store to seed
            activate: Make the new room the active room

        Returns:
            The created Room

        Raises:
            FileNotFoundError: If the scenario file doesn't exist
            ConfigurationError: If the scenario is malformed
            json.JSONDecodeError: If the file contains invalid JSON
        """
        data = self._read(scenario_name)
        room_spec, agent_specs, relationships = self.parse(data)

        if room_spec.room_id and store.get_room(room_spec.room_id) is not None:
            raise ConfigurationError(f"Room id '{room_spec.room_id}' already exists")

        room = store.add_room(room_spec)
        ids_by_name: Dict[str, str] = {}
        for spec in agent_specs:
            agent = store.add_agent(spec.model_copy(update={"location": room.room_id}))
            ids_by_name[agent.name] = agent.agent_id

        for source, target, score, symmetric in relationships:
            store.set_relationship(ids_by_name[source], ids_by_name[target], score)
            if symmetric:
                store.set_relationship(ids_by_name[target], ids_by_name[source], score)

        if activate:
            store.set_active_room(room.room_id)

        log_info(f"Loaded scenario '{room.name}' with {len(agent_specs)} agent(s)")
        return room

    def parse(
        self, data: Dict[str, Any]
    ) -> Tuple[RoomSpec, List[AgentSpec], List[Tuple[str, str, int, bool]]]:
        """Validate scenario data and convert it to specs without side effects."""
        self._validate_scenario(data)

        try:
            room_spec = RoomSpec(
                name=data["name"],
                description=data["description"],
                storyboard=data.get("storyboard"),
                room_id=data.get("room_id"),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid room definition: {exc}") from exc

        agent_specs = [self._parse_agent(entry) for entry in data["agents"]]
        names = [spec.name.strip() for spec in agent_specs]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Scenario agent names must be unique: {duplicates}")

        relationships = [self._parse_relationship(entry, set(names)) for entry in data.get("relationships", [])]
        return room_spec, agent_specs, relationships

    def _validate_scenario(self, data: Dict[str, Any]) -> None:
        required = ["name", "description", "agents"]
        missing = [field for field in required if field not in data]
        if missing:
            raise ConfigurationError(f"Scenario missing required fields: {missing}")
        if not data["agents"]:
            raise ConfigurationError("Scenario must have at least one agent")

    def _parse_agent(self, entry: Dict[str, Any]) -> AgentSpec:
        if not isinstance(entry, dict) or not str(entry.get("name", "")).strip():
            raise ConfigurationError("Each scenario agent needs a non-empty 'name'")

        preset = entry.get("preset")
        try:
            if preset is not None:
                if preset not in PERSONALITY_PRESETS and preset not in ARCHETYPES:
                    raise ConfigurationError(f"Unknown preset '{preset}' for agent {entry['name']}")
                spec = agent_spec_from_preset(
                    preset,
                    self.rng,
                    role=entry.get("role"),
                    name=entry["name"],
                    backstory=entry.get("backstory"),
                )
                if "traits" in entry:
                    merged = {**spec.traits.as_dict(), **entry["traits"]}
                    spec = AgentSpec(**{**spec.model_dump(), "traits": merged})
                return spec
            return AgentSpec(
                name=entry["name"],
                role=entry.get("role") or "Resident",
                backstory=entry.get("backstory", ""),
                traits=entry.get("traits", {}),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid agent '{entry['name']}': {exc}") from exc

    def _parse_relationship(self, entry: Dict[str, Any], names: set) -> Tuple[str, str, int, bool]:
        try:
            source, target, score = entry["source"], entry["target"], int(entry["score"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(
                "Relationship entries need 'source', 'target' and an integer 'score'"
            ) from exc
        unknown = [name for name in (source, target) if name not in names]
        if unknown:
            raise ConfigurationError(f"Relationship references unknown agents: {unknown}")
        if source == target:
            raise ConfigurationError("Relationship source and target must differ")
        return source, target, score, bool(entry.get("symmetric", False))

    def load_template(
        self,
        template_id: str,
        store: StateStore,
        *,
        count: Optional[int] = None,
        activate: bool = True,
    ) -> Room:
        """Create a room from a built-in template with generated agents."""
        template = ROOM_TEMPLATES.get(template_id)
        if template is None:
            raise ConfigurationError(
                f"Unknown room template '{template_id}'. Available: {sorted(ROOM_TEMPLATES)}"
            )
        specs = template_agent_specs(template, self.rng, count)
        room = store.add_room(RoomSpec(name=template.name, description=template.description))
        for spec in specs:
            store.add_agent(spec.model_copy(update={"location": room.room_id}))
        if activate:
            store.set_active_room(room.room_id)
        log_info(f"Created room '{room.name}' from template with {len(specs)} agent(s)")
        return room

    def list_scenarios(self) -> List[str]:
        """List scenario names (without .json extension)."""
        if not self.scenarios_dir.exists():
            return []
        return sorted(
            f.stem for f in self.scenarios_dir.glob("*.json") if not f.name.startswith("_")
        )

    def get_scenario_info(self, scenario_name: str) -> Dict[str, Any]:
        """Get scenario metadata without loading it into a store."""
        data = self._read(scenario_name)
        return {
            "name": data.get("name", scenario_name),
            "description": data.get("description", "No description"),
            "num_agents": len(data.get("agents", [])),
            "recommended_ticks": data.get("recommended_ticks", 600),
        }


__all__ = ["ScenarioLoader"]
