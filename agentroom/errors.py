"""Exception hierarchy shared across agentroom modules.

Every error raised by the core derives from AgentRoomError so hosts can catch
the whole family in one place. Nothing here is fatal to the process: provider
errors are recovered inside the scheduler, and store errors abort only the
operation that raised them.
"""


class AgentRoomError(Exception):
    """Base class for all agentroom errors."""


class ConfigurationError(AgentRoomError, ValueError):
    """Raised when agent or room input is malformed at creation/edit time.

    The store raises this before touching any state, so the snapshot visible to
    readers is unchanged after the failure.
    """


class InvariantViolationError(AgentRoomError):
    """Raised when an operation references state that does not exist.

    Examples: interacting with an agent id that was removed, moving an agent to
    an unknown room, removing the permanent ``main`` room.
    """


class ProviderUnavailableError(AgentRoomError):
    """Raised when no remote utterance generator is configured."""


class ProviderFailureError(AgentRoomError):
    """Raised when the remote utterance generator fails (network, parse, timeout)."""


__all__ = [
    "AgentRoomError",
    "ConfigurationError",
    "InvariantViolationError",
    "ProviderUnavailableError",
    "ProviderFailureError",
]
