"""
agentroom - autonomous agents sharing a room, colliding, and talking.

The interaction engine: movement and collision detection, the per-pair
exchange scheduler, the relationship/affect model, and the state store that
holds agents, messages, relationships, rooms, and conversation windows.

Nothing is persisted; all dependencies are injected by the host.
"""

__version__ = "0.1.0"

# Main simulation components
from .simulation import Simulation, SimulationSummary
from .scheduler import (
    AdmissionPolicy,
    InteractionScheduler,
    OfferOutcome,
    PairState,
)
from .movement import MovementEngine, ProximityEvent
from .directory import Directory

# State store
from .store import (
    CONVERSATION_WINDOW_SIZE,
    MAIN_ROOM_ID,
    StateStore,
    StoreEvent,
    StoreSnapshot,
)

# Relationship model
from .relationships import (
    RELATIONSHIP_SCORE_BOUND,
    RelationshipBucket,
    apply_delta,
    choose_response_tone,
    choose_tone,
    classify,
    delta,
    response_delta,
)

# Utterance providers
from .utterance import (
    FallbackUtteranceProvider,
    GeneratedUtterance,
    LLMUtteranceProvider,
    UtteranceContext,
    UtteranceProvider,
    UtteranceTurn,
    resolve_utterance,
)
from .prompts import DEFAULT_PROMPTS, PromptLibrary, PromptTemplate

# Core schemas
from .schemas import (
    Agent,
    AgentSpec,
    ConversationTurn,
    Message,
    Room,
    RoomSpec,
    Tone,
    TraitVector,
)

# Errors
from .errors import (
    AgentRoomError,
    ConfigurationError,
    InvariantViolationError,
    ProviderFailureError,
    ProviderUnavailableError,
)

# Utilities
from .scenario import ScenarioLoader
from .presets import (
    PERSONALITY_PRESETS,
    agent_spec_from_preset,
    describe_trait,
    random_traits,
)
from .analysis import (
    conversation_threads,
    interaction_counts,
    relationship_table,
    tone_breakdown,
)
from .config import Config

__all__ = [
    "__version__",
    # Simulation
    "Simulation",
    "SimulationSummary",
    "InteractionScheduler",
    "AdmissionPolicy",
    "OfferOutcome",
    "PairState",
    "MovementEngine",
    "ProximityEvent",
    "Directory",
    # Store
    "StateStore",
    "StoreSnapshot",
    "StoreEvent",
    "MAIN_ROOM_ID",
    "CONVERSATION_WINDOW_SIZE",
    # Relationships
    "RELATIONSHIP_SCORE_BOUND",
    "RelationshipBucket",
    "classify",
    "choose_tone",
    "choose_response_tone",
    "delta",
    "response_delta",
    "apply_delta",
    # Utterances
    "UtteranceProvider",
    "LLMUtteranceProvider",
    "FallbackUtteranceProvider",
    "UtteranceContext",
    "UtteranceTurn",
    "GeneratedUtterance",
    "resolve_utterance",
    "PromptTemplate",
    "PromptLibrary",
    "DEFAULT_PROMPTS",
    # Schemas
    "Agent",
    "AgentSpec",
    "TraitVector",
    "Message",
    "ConversationTurn",
    "Room",
    "RoomSpec",
    "Tone",
    # Errors
    "AgentRoomError",
    "ConfigurationError",
    "InvariantViolationError",
    "ProviderUnavailableError",
    "ProviderFailureError",
    # Utilities
    "ScenarioLoader",
    "PERSONALITY_PRESETS",
    "agent_spec_from_preset",
    "describe_trait",
    "random_traits",
    "conversation_threads",
    "interaction_counts",
    "tone_breakdown",
    "relationship_table",
    "Config",
]
