"""Agent presets, name pools, and trait descriptions.

Personality presets are plain trait vectors. Archetypes add a role and a
backstory on top (the quick-create agents). Room templates seed a room with
role-assigned agents drawn from the personality presets.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .schemas import TRAIT_NAMES, AgentSpec, TraitVector

PERSONALITY_PRESETS: Dict[str, TraitVector] = {
    "balanced": TraitVector(friendliness=0.5, aggression=0.5, curiosity=0.5, extraversion=0.5),
    "friendly": TraitVector(friendliness=0.8, aggression=0.2, curiosity=0.6, extraversion=0.7),
    "aggressive": TraitVector(friendliness=0.3, aggression=0.8, curiosity=0.5, extraversion=0.6),
    "curious": TraitVector(friendliness=0.6, aggression=0.3, curiosity=0.9, extraversion=0.5),
    "shy": TraitVector(friendliness=0.6, aggression=0.2, curiosity=0.7, extraversion=0.2),
    "outgoing": TraitVector(friendliness=0.7, aggression=0.4, curiosity=0.6, extraversion=0.9),
    "reserved": TraitVector(friendliness=0.4, aggression=0.3, curiosity=0.5, extraversion=0.3),
}

POPULAR_NAMES: Tuple[str, ...] = (
    "James", "John", "Robert", "Michael", "William", "David", "Richard", "Joseph", "Thomas", "Charles",
    "Daniel", "Matthew", "Anthony", "Mark", "Donald", "Steven", "Paul", "Andrew", "Joshua", "Kenneth",
    "Kevin", "Brian", "George", "Timothy", "Ronald", "Jason", "Edward", "Jeffrey", "Ryan", "Jacob",
    "Mary", "Patricia", "Jennifer", "Linda", "Elizabeth", "Barbara", "Susan", "Jessica", "Sarah", "Karen",
    "Lisa", "Nancy", "Betty", "Sandra", "Margaret", "Ashley", "Kimberly", "Emily", "Donna", "Michelle",
    "Carol", "Amanda", "Dorothy", "Melissa", "Deborah", "Stephanie", "Rebecca", "Laura", "Sharon", "Cynthia",
    "Taylor", "Jordan", "Casey", "Riley", "Jessie", "Avery", "Jaime", "Peyton", "Kerry", "Jody",
    "Kendall", "Skyler", "Frankie", "Pat", "Quinn", "Harley", "Reese", "Robbie", "Stevie", "Morgan",
)

RANDOM_ROLES: Tuple[str, ...] = ("Resident", "Visitor", "Worker", "Student", "Researcher")

TRAIT_LABELS: Dict[str, Tuple[str, ...]] = {
    "friendliness": ("Hostile", "Cold", "Reserved", "Neutral", "Warm", "Friendly", "Loving"),
    "aggression": ("Pacifist", "Gentle", "Calm", "Neutral", "Assertive", "Aggressive", "Violent"),
    "curiosity": ("Incurious", "Disinterested", "Cautious", "Neutral", "Interested", "Curious", "Obsessive"),
    "extraversion": (
        "Reclusive", "Introverted", "Reserved", "Balanced", "Sociable", "Extraverted", "Attention-seeking",
    ),
}
_GENERIC_LABELS = ("Very Low", "Low", "Somewhat Low", "Moderate", "Somewhat High", "High", "Very High")


@dataclass(frozen=True)
class Archetype:
    """Quick-create agent: role, backstory, and fixed traits."""

    role: str
    backstory: str
    traits: Optional[TraitVector] = None  # None draws random traits


ARCHETYPES: Dict[str, Archetype] = {
    "friendly": Archetype(
        role="Friendly Neighbor",
        backstory="Always looking to help others and make new friends.",
        traits=TraitVector(friendliness=0.9, aggression=0.1, curiosity=0.7, extraversion=0.8),
    ),
    "aggressive": Archetype(
        role="Troublemaker",
        backstory="Has a chip on their shoulder and always looking for conflict.",
        traits=TraitVector(friendliness=0.2, aggression=0.9, curiosity=0.5, extraversion=0.7),
    ),
    "shy": Archetype(
        role="Observer",
        backstory="Prefers to keep to themselves but has deep thoughts.",
        traits=TraitVector(friendliness=0.6, aggression=0.2, curiosity=0.8, extraversion=0.2),
    ),
    "random": Archetype(role="", backstory="A mysterious individual with an unknown past."),
}


@dataclass(frozen=True)
class RoomTemplate:
    template_id: str
    name: str
    description: str
    roles: Tuple[str, ...] = field(default_factory=tuple)
    default_agents: int = 0


ROOM_TEMPLATES: Dict[str, RoomTemplate] = {
    template.template_id: template
    for template in (
        RoomTemplate(
            "affiliate-network",
            "Affiliate Marketing Network",
            "A business environment where marketers collaborate and compete to promote products.",
            ("Network Owner", "Affiliate Marketer", "Product Creator", "Marketing Manager", "Customer Support"),
            5,
        ),
        RoomTemplate(
            "cooking-show",
            "Cooking Competition Show",
            "A high-pressure kitchen where chefs compete to create the best dishes.",
            ("Head Chef", "Contestant", "Judge", "Host", "Sous Chef", "Food Critic"),
            6,
        ),
        RoomTemplate(
            "classroom",
            "High School Classroom",
            "An educational setting with teachers and students of varying personalities.",
            ("Teacher", "Class President", "Troublemaker", "Quiet Student", "Overachiever", "Exchange Student"),
            6,
        ),
        RoomTemplate(
            "office",
            "Corporate Office",
            "A typical workplace with various employees and office politics.",
            ("CEO", "Manager", "Assistant", "Intern", "HR Representative", "Sales Executive"),
            6,
        ),
        RoomTemplate(
            "soccer-game",
            "Soccer Team",
            "A sports team with players, coaches, and support staff.",
            ("Coach", "Team Captain", "Striker", "Goalkeeper", "Defender", "New Recruit", "Team Manager"),
            7,
        ),
    )
}

MAX_TEMPLATE_AGENTS = 10


def describe_trait(trait: str, value: float) -> str:
    """Seven-level label for a trait value in [0, 1]."""
    labels = TRAIT_LABELS.get(trait, _GENERIC_LABELS)
    index = min(math.floor(value * 6), 6)
    return labels[max(index, 0)]


def describe_traits(traits: TraitVector) -> str:
    """One-line summary like ``Warm (friendliness 0.70), Calm (aggression 0.30), ...``."""
    return ", ".join(
        f"{describe_trait(name, getattr(traits, name))} ({name} {getattr(traits, name):.2f})"
        for name in TRAIT_NAMES
    )


def random_traits(rng: random.Random) -> TraitVector:
    return TraitVector(**{name: rng.random() for name in TRAIT_NAMES})


def random_name(rng: random.Random, exclude: Sequence[str] = ()) -> str:
    available = [name for name in POPULAR_NAMES if name not in set(exclude)]
    if not available:
        raise ConfigurationError("No unused names left in the name pool")
    return rng.choice(available)


def agent_spec_from_preset(
    preset: str,
    rng: random.Random,
    role: Optional[str] = None,
    *,
    name: Optional[str] = None,
    backstory: Optional[str] = None,
) -> AgentSpec:
    """Build an AgentSpec from an archetype or personality preset name.

    Archetypes (``friendly``, ``aggressive``, ``shy``, ``random``) take
    precedence because they also carry a role and backstory.
    """
    archetype = ARCHETYPES.get(preset)
    if archetype is not None:
        traits = archetype.traits or random_traits(rng)
        resolved_role = role or archetype.role or rng.choice(RANDOM_ROLES)
        resolved_backstory = archetype.backstory
    elif preset in PERSONALITY_PRESETS:
        traits = PERSONALITY_PRESETS[preset]
        resolved_role = role or "Resident"
        resolved_backstory = ""
    else:
        raise ConfigurationError(
            f"Unknown preset '{preset}'. Choose one of: {sorted(set(ARCHETYPES) | set(PERSONALITY_PRESETS))}"
        )

    return AgentSpec(
        name=name or random_name(rng),
        role=resolved_role,
        backstory=backstory if backstory is not None else resolved_backstory,
        traits=traits,
    )


def template_agent_specs(
    template: RoomTemplate,
    rng: random.Random,
    count: Optional[int] = None,
) -> List[AgentSpec]:
    """Role-assigned agents with unique names and random personality presets."""
    count = template.default_agents if count is None else count
    if count > MAX_TEMPLATE_AGENTS:
        raise ConfigurationError(f"A room template supports at most {MAX_TEMPLATE_AGENTS} agents")
    if count and not template.roles:
        raise ConfigurationError(f"Template '{template.template_id}' has no roles to assign")

    roles = list(template.roles)
    while len(roles) < count:
        roles.append(rng.choice(template.roles))

    specs: List[AgentSpec] = []
    used: List[str] = []
    preset_names = list(PERSONALITY_PRESETS)
    for role in roles[:count]:
        name = random_name(rng, exclude=used)
        used.append(name)
        specs.append(
            AgentSpec(
                name=name,
                role=role,
                backstory=f"A {role} in the {template.name} simulation.",
                traits=PERSONALITY_PRESETS[rng.choice(preset_names)],
            )
        )
    return specs


__all__ = [
    "PERSONALITY_PRESETS",
    "POPULAR_NAMES",
    "TRAIT_LABELS",
    "ARCHETYPES",
    "ROOM_TEMPLATES",
    "Archetype",
    "RoomTemplate",
    "describe_trait",
    "describe_traits",
    "random_traits",
    "random_name",
    "agent_spec_from_preset",
    "template_agent_specs",
]
