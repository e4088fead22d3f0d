"""
Pydantic schemas for the agentroom interaction engine.

All durable data structures held by the state store are defined here.

Design Philosophy:
- Stored records are frozen; edits produce a new record via model_copy(update=...)
- Trait values are bounded to [0, 1] by field constraints
- Specs (AgentSpec, RoomSpec) describe caller input; the store assigns ids and timestamps
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Timezone-aware timestamp used for every record the store creates."""
    return datetime.now(timezone.utc)


# ============================================================================
# Affect
# ============================================================================


class Tone(str, Enum):
    """Qualitative affect of a generated message."""

    FRIENDLY = "friendly"
    NEUTRAL = "neutral"
    HOSTILE = "hostile"


TRAIT_NAMES = ("friendliness", "aggression", "curiosity", "extraversion")


class TraitVector(BaseModel):
    """Personality of an agent, each axis in [0, 1].

    Friendliness and aggression drive tone selection; curiosity and
    extraversion only flavour generated dialogue.
    """

    model_config = ConfigDict(frozen=True)

    friendliness: float = Field(0.5, ge=0.0, le=1.0)
    aggression: float = Field(0.5, ge=0.0, le=1.0)
    curiosity: float = Field(0.5, ge=0.0, le=1.0)
    extraversion: float = Field(0.5, ge=0.0, le=1.0)

    def as_dict(self) -> Dict[str, float]:
        """Return a plain dictionary keyed by trait name."""
        return {name: getattr(self, name) for name in TRAIT_NAMES}


# ============================================================================
# Agents
# ============================================================================


class AgentSpec(BaseModel):
    """Caller-supplied description of a new agent.

    The store validates the name and assigns id, creation time, and location
    (the active room unless ``location`` names an existing room).
    """

    name: str = Field(..., description="Display name shown in messages")
    role: str = Field("Resident", description="Free-text role")
    backstory: str = Field("", description="Background used as generation context")
    traits: TraitVector = Field(default_factory=TraitVector)
    location: Optional[str] = Field(None, description="Optional explicit room id")


class Agent(BaseModel):
    """A simulated actor with a trait vector and a room location."""

    model_config = ConfigDict(frozen=True)

    agent_id: str = Field(..., description="Opaque unique identifier")
    name: str
    role: str = "Resident"
    backstory: str = ""
    traits: TraitVector = Field(default_factory=TraitVector)
    created_at: datetime = Field(default_factory=utc_now)
    # None means "not recorded"; the directory treats it as the active room.
    location: Optional[str] = None


# ============================================================================
# Messages and conversation windows
# ============================================================================


class Message(BaseModel):
    """One committed utterance. Immutable and append-only."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    sender_id: str
    receiver_id: str
    content: str
    tone: Tone
    timestamp: datetime = Field(default_factory=utc_now)


class ConversationTurn(BaseModel):
    """Entry of a per-pair conversation window, used only as generation context."""

    model_config = ConfigDict(frozen=True)

    speaker_id: str
    speaker_name: str
    content: str
    tone: Tone
    timestamp: datetime


# ============================================================================
# Rooms
# ============================================================================


class RoomSpec(BaseModel):
    """Caller-supplied description of a new room."""

    name: str
    description: str = ""
    storyboard: Optional[str] = None
    room_id: Optional[str] = Field(None, description="Optional explicit id; generated when omitted")


class Room(BaseModel):
    """A location agents can occupy. Only one room is simulated at a time."""

    model_config = ConfigDict(frozen=True)

    room_id: str
    name: str
    description: str = ""
    storyboard: Optional[str] = None
