"""Helper for bounded, single-attempt structured LLM calls.

An utterance request gets exactly one attempt: a timeout, transport error,
or schema violation is reported as ProviderFailureError and the caller falls
back to the local template generator. No retries happen inside an exchange.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Callable, TypeVar

from mirascope import llm
from pydantic import BaseModel, ValidationError

from .errors import ProviderFailureError
from .local_llm import LocalLLMError, call_ollama_chat
from .logging_utils import log_info


ModelT = TypeVar("ModelT", bound=BaseModel)
DEFAULT_TIMEOUT_SECONDS = 10.0


def _debug_enabled() -> bool:
    return bool(os.getenv("DEBUG_LLM"))


def _combine_prompts(system_prompt: str, user_prompt: str) -> str:
    return "\n\n".join(section for section in (system_prompt, user_prompt) if section)


def _summarize_validation_error(exc: ValidationError) -> str:
    issues = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(part) for part in err.get("loc", [])) or "root"
        issues.append(f"{loc}: {err.get('msg', 'validation error')}")
    return "; ".join(issues) or "response did not match the expected schema"


async def call_llm(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_provider: str,
    llm_model: str,
    response_model: type[ModelT],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    base_url: str | None = None,
) -> ModelT:
    """Invoke a structured LLM call once, bounded by ``timeout`` seconds.

    Provider ``ollama`` goes through the local REST helper; anything else is
    dispatched through mirascope's ``llm.call`` decorator, which validates the
    reply against ``response_model``.

    Raises:
        ProviderFailureError: On timeout, transport failure, or schema mismatch.
    """

    system_prompt = system_prompt.strip()
    user_prompt = user_prompt.strip()
    use_local_llm = llm_provider.lower() == "ollama"

    if _debug_enabled():
        log_info(f"[LLM] {llm_provider}/{llm_model} prompt:\n{_combine_prompts(system_prompt, user_prompt)}")

    try:
        if use_local_llm:
            raw_response = await asyncio.wait_for(
                call_ollama_chat(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    llm_model=llm_model,
                    base_url=base_url,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
            result = response_model.model_validate_json(raw_response)
        else:
            # The decorated function only returns the prompt; mirascope turns
            # it into a provider request and parses the structured reply.
            @llm.call(provider=llm_provider, model=llm_model, response_model=response_model)
            async def _invoke(prompt: str) -> str:
                return prompt

            remote_invoke: Callable[[str], Any] = _invoke
            result = await asyncio.wait_for(
                remote_invoke(_combine_prompts(system_prompt, user_prompt)),
                timeout=timeout,
            )
    except asyncio.TimeoutError as exc:
        raise ProviderFailureError(
            f"LLM call timed out after {timeout:g}s for {response_model.__name__}"
        ) from exc
    except ValidationError as exc:
        raise ProviderFailureError(
            f"LLM reply did not match {response_model.__name__}: {_summarize_validation_error(exc)}"
        ) from exc
    except LocalLLMError as exc:
        raise ProviderFailureError(f"Local LLM provider error ({llm_provider}): {exc}") from exc
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise ProviderFailureError(f"LLM provider error ({llm_provider}): {exc}") from exc

    if _debug_enabled():
        log_info(f"[LLM] response: {result!r}")
    return result


__all__ = ["call_llm", "DEFAULT_TIMEOUT_SECONDS"]
