"""Unit tests for the single-attempt LLM helper."""

import asyncio

import pytest
from pydantic import BaseModel, ValidationError

from agentroom.errors import ProviderFailureError
from agentroom.llm_utils import call_llm
from agentroom.local_llm import LocalLLMError


class DummyModel(BaseModel):
    content: str


def make_decorator(caller, expected_model=None):
    def fake_decorator(*, provider, model, response_model):
        if expected_model is not None:
            assert response_model is expected_model

        def wrapper(fn):
            async def inner(prompt: str):
                return await caller(prompt)

            return inner

        return wrapper

    return fake_decorator


@pytest.mark.asyncio
async def test_call_llm_success(monkeypatch):
    recorded_prompts: list[str] = []

    async def fake_caller(prompt: str) -> DummyModel:
        recorded_prompts.append(prompt)
        return DummyModel(content="ok")

    monkeypatch.setattr("agentroom.llm_utils.llm.call", make_decorator(fake_caller, DummyModel))

    result = await call_llm(
        system_prompt="System context",
        user_prompt="What now?",
        llm_provider="openai",
        llm_model="gpt-4o-mini",
        response_model=DummyModel,
    )

    assert result.content == "ok"
    assert recorded_prompts == ["System context\n\nWhat now?"]


@pytest.mark.asyncio
async def test_call_llm_validation_error_is_not_retried(monkeypatch):
    attempts: list[str] = []

    try:
        DummyModel.model_validate({})
    except ValidationError as exc:
        validation_error = exc

    async def fake_caller(prompt: str) -> DummyModel:
        attempts.append(prompt)
        raise validation_error

    monkeypatch.setattr("agentroom.llm_utils.llm.call", make_decorator(fake_caller))

    with pytest.raises(ProviderFailureError) as excinfo:
        await call_llm(
            system_prompt="System",
            user_prompt="User",
            llm_provider="openai",
            llm_model="gpt-4o-mini",
            response_model=DummyModel,
        )

    assert len(attempts) == 1
    assert "content: Field required" in str(excinfo.value)


@pytest.mark.asyncio
async def test_call_llm_times_out(monkeypatch):
    async def slow_caller(prompt: str) -> DummyModel:
        await asyncio.sleep(5)
        return DummyModel(content="too late")

    monkeypatch.setattr("agentroom.llm_utils.llm.call", make_decorator(slow_caller))

    with pytest.raises(ProviderFailureError, match="timed out"):
        await call_llm(
            system_prompt="System",
            user_prompt="User",
            llm_provider="openai",
            llm_model="gpt-4o-mini",
            response_model=DummyModel,
            timeout=0.05,
        )


@pytest.mark.asyncio
async def test_call_llm_wraps_transport_errors(monkeypatch):
    async def broken_caller(prompt: str) -> DummyModel:
        raise ConnectionError("connection refused")

    monkeypatch.setattr("agentroom.llm_utils.llm.call", make_decorator(broken_caller))

    with pytest.raises(ProviderFailureError, match="connection refused"):
        await call_llm(
            system_prompt="System",
            user_prompt="User",
            llm_provider="anthropic",
            llm_model="claude-3-5-haiku-latest",
            response_model=DummyModel,
        )


@pytest.mark.asyncio
async def test_call_llm_local_provider(monkeypatch):
    captured_kwargs: dict[str, str] = {}

    async def fake_local_call(*, system_prompt, user_prompt, llm_model, base_url=None, timeout=10.0):
        captured_kwargs["system_prompt"] = system_prompt
        captured_kwargs["user_prompt"] = user_prompt
        captured_kwargs["llm_model"] = llm_model
        captured_kwargs["base_url"] = base_url
        captured_kwargs["timeout"] = str(timeout)
        return '{"content":"ok"}'

    def fail_decorator(*args, **kwargs):
        raise AssertionError("remote provider path should not be used for ollama")

    monkeypatch.setattr("agentroom.llm_utils.call_ollama_chat", fake_local_call)
    monkeypatch.setattr("agentroom.llm_utils.llm.call", fail_decorator)

    result = await call_llm(
        system_prompt="System context",
        user_prompt="User payload",
        llm_provider="ollama",
        llm_model="llama3.1",
        response_model=DummyModel,
        timeout=3.0,
        base_url="http://ollama:11434",
    )

    assert result.content == "ok"
    assert captured_kwargs["system_prompt"] == "System context"
    assert captured_kwargs["user_prompt"] == "User payload"
    assert captured_kwargs["llm_model"] == "llama3.1"
    assert captured_kwargs["base_url"] == "http://ollama:11434"
    assert captured_kwargs["timeout"] == "3.0"


@pytest.mark.asyncio
async def test_call_llm_local_provider_bad_json(monkeypatch):
    async def fake_local_call(**kwargs):
        return '{"text": "wrong key"}'

    monkeypatch.setattr("agentroom.llm_utils.call_ollama_chat", fake_local_call)

    with pytest.raises(ProviderFailureError, match="DummyModel"):
        await call_llm(
            system_prompt="System",
            user_prompt="User",
            llm_provider="ollama",
            llm_model="llama3.1",
            response_model=DummyModel,
        )


@pytest.mark.asyncio
async def test_call_llm_local_provider_unreachable(monkeypatch):
    async def fake_local_call(**kwargs):
        raise LocalLLMError("Could not reach Ollama")

    monkeypatch.setattr("agentroom.llm_utils.call_ollama_chat", fake_local_call)

    with pytest.raises(ProviderFailureError, match="Could not reach Ollama"):
        await call_llm(
            system_prompt="System",
            user_prompt="User",
            llm_provider="ollama",
            llm_model="llama3.1",
            response_model=DummyModel,
        )
