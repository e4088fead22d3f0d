"""Ollama backend for utterance generation (``LLM_PROVIDER=ollama``).

Each exchange turn makes at most one chat request. The server is asked for
JSON output so the reply can be validated against ``UtteranceResponse`` by
``llm_utils.call_llm``; this module only moves text over HTTP and reports
transport problems as LocalLLMError.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from urllib import error, request

from .config import Config

OLLAMA_CHAT_PATH = "/api/chat"


class LocalLLMError(RuntimeError):
    """The Ollama server could not produce an utterance reply."""


def _build_chat_payload(system_prompt: str, user_prompt: str, llm_model: str) -> dict[str, Any]:
    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})
    return {
        "model": llm_model,
        "messages": messages,
        "stream": False,
        # Constrains the model to emit a JSON object such as {"content": "..."}.
        "format": "json",
    }


def _perform_ollama_request(
    payload: dict[str, Any],
    base_url: str,
    timeout: float,
) -> str:
    """POST one chat request and return the assistant message text (blocking)."""

    url = f"{base_url}{OLLAMA_CHAT_PATH}"
    req = request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LocalLLMError(
            f"Ollama rejected the utterance request for model '{payload['model']}' "
            f"(HTTP {exc.code}): {body or exc.reason}"
        ) from exc
    except (error.URLError, TimeoutError) as exc:
        reason = getattr(exc, "reason", exc)
        raise LocalLLMError(
            f"Ollama is not reachable at {url} ({reason}). Start `ollama serve` or set OLLAMA_BASE_URL."
        ) from exc

    try:
        reply = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocalLLMError("Ollama sent a reply envelope that is not JSON.") from exc

    content = (reply.get("message") or {}).get("content")
    if not content:
        raise LocalLLMError("Ollama reply has no assistant message to use as an utterance.")
    return content


async def call_ollama_chat(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    base_url: str | None = None,
    timeout: float = 10.0,
) -> str:
    """Ask a local Ollama model for one utterance and return its raw JSON text.

    The blocking request runs in a worker thread, so movement ticks keep
    running while a turn is generated. ``timeout`` bounds the socket; the
    caller adds its own ``asyncio.wait_for`` around the whole call.
    """

    user_prompt = user_prompt.strip()
    if not user_prompt:
        raise LocalLLMError("Refusing to request an utterance with an empty user prompt.")

    payload = _build_chat_payload(system_prompt.strip(), user_prompt, llm_model)
    resolved_base = (base_url or Config.OLLAMA_BASE_URL).rstrip("/")
    return await asyncio.to_thread(_perform_ollama_request, payload, resolved_base, timeout)


__all__ = ["LocalLLMError", "OLLAMA_CHAT_PATH", "call_ollama_chat"]
