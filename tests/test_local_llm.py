import pytest

from agentroom.config import Config
from agentroom.local_llm import LocalLLMError, call_ollama_chat


@pytest.mark.asyncio
async def test_call_ollama_chat_builds_payload(monkeypatch):
    captured: dict[str, object] = {}

    def fake_request(payload, base_url, timeout):
        captured["payload"] = payload
        captured["base_url"] = base_url
        captured["timeout"] = timeout
        return '{"content":"ok"}'

    monkeypatch.setattr("agentroom.local_llm._perform_ollama_request", fake_request)

    result = await call_ollama_chat(
        system_prompt="System context",
        user_prompt="User payload",
        llm_model="llama3.1",
        base_url="http://localhost:11434/",
        timeout=30,
    )

    assert result == '{"content":"ok"}'
    payload = captured["payload"]
    assert payload["model"] == "llama3.1"
    assert payload["format"] == "json"
    assert payload["stream"] is False
    assert payload["messages"][0] == {"role": "system", "content": "System context"}
    assert payload["messages"][1] == {"role": "user", "content": "User payload"}
    assert captured["base_url"] == "http://localhost:11434"
    assert captured["timeout"] == 30


@pytest.mark.asyncio
async def test_call_ollama_chat_defaults_to_configured_url(monkeypatch):
    captured: dict[str, object] = {}

    def fake_request(payload, base_url, timeout):
        captured["base_url"] = base_url
        captured["messages"] = payload["messages"]
        return "{}"

    monkeypatch.setattr("agentroom.local_llm._perform_ollama_request", fake_request)
    monkeypatch.setattr(Config, "OLLAMA_BASE_URL", "http://gpu-box:11434")

    await call_ollama_chat(system_prompt="  ", user_prompt="Hi", llm_model="llama3.1")

    assert captured["base_url"] == "http://gpu-box:11434"
    assert captured["messages"] == [{"role": "user", "content": "Hi"}]


@pytest.mark.asyncio
async def test_call_ollama_chat_rejects_empty_prompt():
    with pytest.raises(LocalLLMError):
        await call_ollama_chat(system_prompt="System", user_prompt="   ", llm_model="llama3.1")


def test_unreachable_server_error_names_url_and_remedy(monkeypatch):
    from urllib import error

    from agentroom.local_llm import _perform_ollama_request

    def refuse(req, timeout):
        raise error.URLError("connection refused")

    monkeypatch.setattr("agentroom.local_llm.request.urlopen", refuse)

    with pytest.raises(LocalLLMError) as excinfo:
        _perform_ollama_request({"model": "llama3.1", "messages": []}, "http://gpu-box:11434", 5)

    message = str(excinfo.value)
    assert "http://gpu-box:11434/api/chat" in message
    assert "OLLAMA_BASE_URL" in message


def test_reply_without_assistant_message_is_an_error(monkeypatch):
    from agentroom.local_llm import _perform_ollama_request

    class FakeResponse:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def read(self):
            return b'{"message": {"role": "assistant", "content": ""}}'

    monkeypatch.setattr("agentroom.local_llm.request.urlopen", lambda req, timeout: FakeResponse())

    with pytest.raises(LocalLLMError, match="utterance"):
        _perform_ollama_request({"model": "llama3.1", "messages": []}, "http://localhost:11434", 5)
