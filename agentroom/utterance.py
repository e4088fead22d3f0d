"""
Utterance providers: turn an interaction context into one line of dialogue.

Two implementations share the UtteranceProvider interface:
- LLMUtteranceProvider calls a remote (mirascope) or local (Ollama) model.
  It may be unavailable (nothing configured) or fail (network, parse, timeout).
- FallbackUtteranceProvider picks from fixed phrase pools and never fails.

resolve_utterance() is the only entry point the scheduler uses. Absence and
failure of the remote provider both resolve to the fallback; failures are
logged once and never retried within the exchange.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .config import Config
from .errors import ProviderFailureError, ProviderUnavailableError
from .llm_utils import call_llm
from .logging_utils import log_error, log_llm
from .presets import describe_traits
from .prompts import DEFAULT_PROMPTS, PromptLibrary, render_template
from .relationships import relationship_label
from .schemas import Agent, Tone

TRANSCRIPT_LIMIT = 10


class UtteranceTurn(str, Enum):
    """Which half of an exchange is being generated."""

    INITIATION = "initiation"
    RESPONSE = "response"


@dataclass(frozen=True)
class UtteranceContext:
    """Everything a provider may use to produce a line.

    ``transcript`` holds at most 10 ``(speaker_name, content)`` pairs, oldest
    first. Only the remote path reads it.
    """

    speaker: Agent
    listener: Agent
    tone: Tone
    relationship_score: int
    turn: UtteranceTurn = UtteranceTurn.INITIATION
    initial_tone: Optional[Tone] = None
    transcript: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        if len(self.transcript) > TRANSCRIPT_LIMIT:
            object.__setattr__(self, "transcript", tuple(self.transcript[-TRANSCRIPT_LIMIT:]))


@dataclass(frozen=True)
class GeneratedUtterance:
    """Resolved line plus where it came from."""

    content: str
    source: str  # "remote" or "fallback"
    error: Optional[str] = None


class UtteranceResponse(BaseModel):
    """Structured reply expected from the remote model."""

    content: str = Field(..., description="The spoken line, without quotes or stage directions")


class UtteranceProvider(ABC):
    """Capability: generate an utterance for a context, or raise."""

    @abstractmethod
    async def generate(self, context: UtteranceContext) -> str:
        """Return the utterance text.

        Raises:
            ProviderUnavailableError: Provider is not configured.
            ProviderFailureError: Provider was attempted and failed.
        """


def format_transcript(transcript: Sequence[Tuple[str, str]]) -> str:
    if not transcript:
        return "(no previous conversation)"
    return "\n".join(f"{speaker}: {content}" for speaker, content in transcript)


class LLMUtteranceProvider(UtteranceProvider):
    """Remote generator backed by mirascope or a local Ollama server.

    Args:
        llm_provider: mirascope provider name or ``ollama``; defaults to LLM_PROVIDER
        llm_model: Model id; defaults to LLM_MODEL
        timeout: Seconds before a call counts as failed
        base_url: Ollama server URL override
        prompts: Library holding ``initiate`` and ``respond`` templates
    """

    def __init__(
        self,
        llm_provider: Optional[str] = None,
        llm_model: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        prompts: Optional[PromptLibrary] = None,
    ) -> None:
        self.llm_provider = llm_provider if llm_provider is not None else Config.LLM_PROVIDER
        self.llm_model = llm_model or Config.LLM_MODEL
        self.timeout = timeout if timeout is not None else Config.UTTERANCE_TIMEOUT_SECONDS
        self.base_url = base_url
        self.prompts = prompts or DEFAULT_PROMPTS

    @property
    def available(self) -> bool:
        return Config.provider_configured(self.llm_provider or "")

    def build_prompt_values(self, context: UtteranceContext) -> Dict[str, str]:
        speaker, listener = context.speaker, context.listener
        return {
            "speaker_name": speaker.name,
            "speaker_role": speaker.role,
            "speaker_backstory": speaker.backstory or "(none given)",
            "speaker_traits": describe_traits(speaker.traits),
            "listener_name": listener.name,
            "listener_role": listener.role,
            "tone": Tone(context.tone).value,
            "initial_tone": Tone(context.initial_tone).value if context.initial_tone else "",
            "relationship_score": str(context.relationship_score),
            "relationship_label": relationship_label(context.relationship_score),
            "transcript": format_transcript(context.transcript),
        }

    async def generate(self, context: UtteranceContext) -> str:
        if not self.available:
            raise ProviderUnavailableError(
                "No utterance provider configured. Set LLM_PROVIDER (and its API key) to enable remote generation."
            )

        template_name = "initiate" if context.turn is UtteranceTurn.INITIATION else "respond"
        rendered = render_template(self.prompts.get(template_name), self.build_prompt_values(context))
        response = await call_llm(
            system_prompt=rendered.system,
            user_prompt=rendered.user,
            llm_provider=self.llm_provider,
            llm_model=self.llm_model,
            response_model=UtteranceResponse,
            timeout=self.timeout,
            base_url=self.base_url,
        )
        content = response.content.strip().strip('"').strip()
        if not content:
            raise ProviderFailureError("LLM returned an empty utterance")
        return content


# ----------------------------------------------------------------------------
# Fallback phrase pools. ``{name}`` is the counterpart being addressed.
# ----------------------------------------------------------------------------

INITIATION_TEMPLATES: Dict[Tone, Tuple[str, ...]] = {
    Tone.FRIENDLY: (
        "Hey {name}, how are you doing today? You're looking great!",
        "{name}! Just the person I wanted to see. I've been thinking about our last conversation.",
        "I really appreciate your perspective, {name}. You always have such insightful thoughts.",
        "{name}, would you like to collaborate on something together? I value your input.",
        "I brought you something I thought you might like, {name}.",
    ),
    Tone.HOSTILE: (
        "{name}, you're really getting on my nerves today.",
        "I don't appreciate your attitude, {name}. Back off.",
        "{name}, stay out of my way if you know what's good for you.",
        "You think you're so clever, don't you {name}?",
        "{name}, I've had enough of your nonsense!",
    ),
    Tone.NEUTRAL: (
        "{name}, have you seen what's happening outside?",
        "Excuse me, {name}, do you have a moment to talk?",
        "{name}, what do you think about the current situation?",
        "I noticed you were busy, {name}. Is now a good time?",
        "{name}, I have a question about something.",
    ),
}

# Keyed by (response tone, initial tone).
RESPONSE_TEMPLATES: Dict[Tuple[Tone, Tone], Tuple[str, ...]] = {
    (Tone.FRIENDLY, Tone.FRIENDLY): (
        "{name}, it's always a pleasure talking with you! I'm doing great, thanks for asking.",
        "I've been looking forward to seeing you too, {name}! What's on your mind?",
        "That means a lot coming from you, {name}. I value our friendship.",
        "I'd love to collaborate with you, {name}! What did you have in mind?",
        "That's so thoughtful of you, {name}! Thank you!",
    ),
    (Tone.FRIENDLY, Tone.HOSTILE): (
        "Hey {name}, I think we got off on the wrong foot. Can we start over?",
        "I understand you're upset, {name}, but I'd rather we try to get along.",
        "{name}, despite our differences, I respect you and want to find common ground.",
        "Let's not fight, {name}. We can work this out peacefully.",
        "{name}, I choose not to engage with negativity. How about we talk about something positive?",
    ),
    (Tone.FRIENDLY, Tone.NEUTRAL): (
        "It's good to see you, {name}! What can I help you with?",
        "{name}, I was just thinking about you! How have you been?",
        "I'm always happy to chat with you, {name}.",
        "{name}, your timing is perfect. I was hoping to talk to you.",
        "Yes, {name}, I'd love to hear what's on your mind.",
    ),
    (Tone.HOSTILE, Tone.FRIENDLY): (
        "{name}, spare me your fake friendliness. I know what you're really like.",
        "Don't pretend to be nice to me, {name}. I'm not falling for it.",
        "{name}, I don't have time for your insincere pleasantries.",
        "Collaborate with you, {name}? I'd rather work alone.",
        "I don't need your gifts or your friendship, {name}.",
    ),
    (Tone.HOSTILE, Tone.HOSTILE): (
        "You want to start something, {name}? Bring it on!",
        "{name}, you're the one who should back off before this gets ugly.",
        "That's rich coming from you, {name}. You're the problem here.",
        "{name}, you've crossed the line this time.",
        "I've had enough of you too, {name}. This ends now!",
    ),
    (Tone.HOSTILE, Tone.NEUTRAL): (
        "{name}, I'm not interested in small talk with you.",
        "No, {name}, I don't have time for you right now.",
        "{name}, why don't you mind your own business?",
        "What I think is none of your concern, {name}.",
        "{name}, just leave me alone.",
    ),
    (Tone.NEUTRAL, Tone.FRIENDLY): (
        "Thanks, {name}. I'm doing alright.",
        "Hello {name}. What did you want to talk about?",
        "I appreciate that, {name}.",
        "Perhaps, {name}. What kind of collaboration did you have in mind?",
        "That's considerate of you, {name}.",
    ),
    (Tone.NEUTRAL, Tone.HOSTILE): (
        "{name}, I think we both need to calm down.",
        "Let's not make this a bigger issue than it needs to be, {name}.",
        "{name}, I'd prefer if we could discuss this civilly.",
        "I'm not looking for trouble, {name}.",
        "{name}, let's just keep our distance for now.",
    ),
    (Tone.NEUTRAL, Tone.NEUTRAL): (
        "Yes, {name}, I noticed. What do you make of it?",
        "I have a moment, {name}. What's up?",
        "I'm not sure, {name}. I haven't given it much thought.",
        "Now is fine, {name}. What did you need?",
        "What's your question, {name}?",
    ),
}


class FallbackUtteranceProvider(UtteranceProvider):
    """Local phrase-pool generator; the terminal safety net."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def compose(self, context: UtteranceContext) -> str:
        tone = Tone(context.tone)
        if context.turn is UtteranceTurn.RESPONSE:
            initial = Tone(context.initial_tone) if context.initial_tone else Tone.NEUTRAL
            pool = RESPONSE_TEMPLATES[(tone, initial)]
        else:
            pool = INITIATION_TEMPLATES[tone]
        return self.rng.choice(pool).format(name=context.listener.name)

    async def generate(self, context: UtteranceContext) -> str:
        return self.compose(context)


async def resolve_utterance(
    context: UtteranceContext,
    provider: Optional[UtteranceProvider],
    fallback: FallbackUtteranceProvider,
) -> GeneratedUtterance:
    """Try ``provider`` once and fall back to ``fallback`` on absence or failure."""
    if provider is None:
        return GeneratedUtterance(content=fallback.compose(context), source="fallback")

    try:
        content = await provider.generate(context)
    except ProviderUnavailableError:
        return GeneratedUtterance(content=fallback.compose(context), source="fallback")
    except ProviderFailureError as exc:
        log_error(f"[Utterance] {context.speaker.name}: provider failed, using fallback ({exc})")
        return GeneratedUtterance(content=fallback.compose(context), source="fallback", error=str(exc))
    except Exception as exc:
        log_error(
            f"[Utterance] {context.speaker.name}: unexpected provider error, using fallback ({exc!r})"
        )
        return GeneratedUtterance(content=fallback.compose(context), source="fallback", error=repr(exc))

    log_llm(f"[Utterance] {context.speaker.name} -> {context.listener.name}: {content}")
    return GeneratedUtterance(content=content, source="remote")


__all__ = [
    "TRANSCRIPT_LIMIT",
    "UtteranceTurn",
    "UtteranceContext",
    "GeneratedUtterance",
    "UtteranceResponse",
    "UtteranceProvider",
    "LLMUtteranceProvider",
    "FallbackUtteranceProvider",
    "resolve_utterance",
    "format_transcript",
    "INITIATION_TEMPLATES",
    "RESPONSE_TEMPLATES",
]
