import pytest

from agentroom.config import Config


def test_provider_configured_requires_keys_for_hosted_providers(monkeypatch):
    monkeypatch.setattr(Config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", "sk-ant-test")

    assert Config.provider_configured("ollama") is True
    assert Config.provider_configured("openai") is False
    assert Config.provider_configured("Anthropic") is True
    assert Config.provider_configured("groq") is True
    assert Config.provider_configured("") is False


def test_provider_configured_defaults_to_env_provider(monkeypatch):
    monkeypatch.setattr(Config, "LLM_PROVIDER", None)
    assert Config.provider_configured() is False

    monkeypatch.setattr(Config, "LLM_PROVIDER", "ollama")
    assert Config.provider_configured() is True


def test_validate_rejects_out_of_range_values(monkeypatch):
    Config.validate()

    monkeypatch.setattr(Config, "MAX_CONCURRENT_EXCHANGES", 0)
    with pytest.raises(ValueError):
        Config.validate()


def test_validate_rejects_negative_delay(monkeypatch):
    monkeypatch.setattr(Config, "RESPONSE_DELAY_SECONDS", -1.0)
    with pytest.raises(ValueError):
        Config.validate()


def test_display_mentions_fallback_when_unconfigured(monkeypatch):
    monkeypatch.setattr(Config, "LLM_PROVIDER", None)
    text = Config.display()
    assert "fallback templates only" in text
    assert "Max Concurrent Exchanges" in text
