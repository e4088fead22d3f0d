"""
agentroom Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _float_env(name: str, default: str) -> float:
    return float(os.getenv(name, default))


class Config:
    """Application configuration loaded from environment variables."""

    # Utterance provider. An unset provider means the remote generator is
    # unavailable and every utterance comes from the local fallback.
    LLM_PROVIDER: str | None = os.getenv("LLM_PROVIDER") or None
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")

    # API Keys
    ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")

    # Local LLM server (provider "ollama")
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://127.0.0.1:11434")

    # Remote generation is bounded; a slower call counts as a provider failure.
    UTTERANCE_TIMEOUT_SECONDS: float = _float_env("UTTERANCE_TIMEOUT_SECONDS", "10")

    # Interaction pacing
    INTERACTION_COOLDOWN_SECONDS: float = _float_env("INTERACTION_COOLDOWN_SECONDS", "10")
    RESPONSE_DELAY_SECONDS: float = _float_env("RESPONSE_DELAY_SECONDS", "2")
    MAX_CONCURRENT_EXCHANGES: int = int(os.getenv("MAX_CONCURRENT_EXCHANGES", "1"))

    # Room geometry and frame pacing
    ROOM_WIDTH: float = _float_env("ROOM_WIDTH", "800")
    ROOM_HEIGHT: float = _float_env("ROOM_HEIGHT", "600")
    TICK_INTERVAL_SECONDS: float = _float_env("TICK_INTERVAL_SECONDS", str(1 / 60))

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    SCENARIOS_DIR: Path = PROJECT_ROOT / "examples" / "scenarios"

    @classmethod
    def provider_configured(cls, provider: str | None = None) -> bool:
        """Return True when a remote utterance provider can be attempted."""
        provider = provider if provider is not None else cls.LLM_PROVIDER
        if not provider:
            return False
        provider = provider.lower()
        if provider == "ollama":
            return True
        if provider == "openai":
            return bool(cls.OPENAI_API_KEY)
        if provider == "anthropic":
            return bool(cls.ANTHROPIC_API_KEY)
        # Other mirascope providers read their own credentials.
        return True

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are out of range."""
        if cls.MAX_CONCURRENT_EXCHANGES < 1:
            raise ValueError("MAX_CONCURRENT_EXCHANGES must be at least 1")

        if cls.UTTERANCE_TIMEOUT_SECONDS <= 0:
            raise ValueError("UTTERANCE_TIMEOUT_SECONDS must be positive")

        if cls.INTERACTION_COOLDOWN_SECONDS < 0 or cls.RESPONSE_DELAY_SECONDS < 0:
            raise ValueError(
                "INTERACTION_COOLDOWN_SECONDS and RESPONSE_DELAY_SECONDS cannot be negative"
            )

        if cls.ROOM_WIDTH <= 0 or cls.ROOM_HEIGHT <= 0:
            raise ValueError("ROOM_WIDTH and ROOM_HEIGHT must be positive")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        provider = cls.LLM_PROVIDER or "none (fallback templates only)"
        lines = [
            "agentroom Configuration:",
            f"  Utterance Provider: {provider}",
            f"  LLM Model: {cls.LLM_MODEL}",
            f"  Timeout: {cls.UTTERANCE_TIMEOUT_SECONDS}s",
            f"  Cooldown: {cls.INTERACTION_COOLDOWN_SECONDS}s",
            f"  Response Delay: {cls.RESPONSE_DELAY_SECONDS}s",
            f"  Max Concurrent Exchanges: {cls.MAX_CONCURRENT_EXCHANGES}",
            f"  Room: {cls.ROOM_WIDTH:g}x{cls.ROOM_HEIGHT:g}",
        ]
        return "\n".join(lines)
