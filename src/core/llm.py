"""
GrowFlow — LLM Provider Abstraction.

Single public function `complete()` that routes to the provider named in an
explicit LLMConfig (built once from Settings at startup).
Supports: openai (default), anthropic, gemini, cohere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

# Type alias for provider implementations:
# (api_key, model, system, user_message, max_tokens, temperature) -> text
_ProviderFn = Callable[[str, str, str, str, int, float], Awaitable[str]]

# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------


async def _complete_openai(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int, temperature: float,
) -> str:
    from openai import AsyncOpenAI

    client = AsyncOpenAI(api_key=api_key)
    response = await client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.choices[0].message.content or ""


async def _complete_anthropic(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int, temperature: float,
) -> str:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system,
        messages=[{"role": "user", "content": user_message}],
    )
    return response.content[0].text


async def _complete_gemini(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int, temperature: float,
) -> str:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    gm = genai.GenerativeModel(
        model_name=model,
        system_instruction=system,
    )
    response = await gm.generate_content_async(
        user_message,
        generation_config=genai.types.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
        ),
    )
    return response.text


async def _complete_cohere(
    api_key: str, model: str, system: str, user_message: str, max_tokens: int, temperature: float,
) -> str:
    import cohere

    client = cohere.AsyncClientV2(api_key=api_key)
    response = await client.chat(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.message.content[0].text


_PROVIDERS: dict[str, tuple[_ProviderFn, str]] = {
    "openai":    (_complete_openai,    "gpt-4o-mini"),
    "anthropic": (_complete_anthropic, "claude-haiku-4-5-20251001"),
    "gemini":    (_complete_gemini,    "gemini-2.0-flash"),
    "cohere":    (_complete_cohere,    "command-a-03-2025"),
}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LLMConfig:
    """Everything needed to call the model endpoint for one process."""

    provider: str
    api_key: str
    model: str = ""
    temperature: float = 0.3
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMConfig | None:
        """Build the LLM config, or None when no API key is configured."""
        if not settings.model_enabled:
            return None
        return cls(
            provider=settings.LLM_PROVIDER,
            api_key=settings.LLM_API_KEY,
            model=settings.LLM_MODEL,
            temperature=settings.LLM_TEMPERATURE,
            timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
        )


def _select_provider(config: LLMConfig) -> tuple[_ProviderFn, str]:
    """Return (provider_fn, model) for the configured provider."""
    provider_name = config.provider.lower()
    if provider_name not in _PROVIDERS:
        raise ValueError(
            f"Unknown LLM_PROVIDER={provider_name!r}. "
            f"Supported: {', '.join(_PROVIDERS)}"
        )

    fn, default_model = _PROVIDERS[provider_name]
    return fn, config.model or default_model


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def complete(
    config: LLMConfig,
    system: str,
    user_message: str,
    max_tokens: int = 256,
) -> str:
    """Send a prompt to the configured LLM provider and return the response text.

    Provider and transport errors propagate to the caller.
    """
    provider_fn, model = _select_provider(config)
    logger.debug("LLM call: provider=%s model=%s", config.provider, model)
    return await provider_fn(
        config.api_key, model, system, user_message, max_tokens, config.temperature,
    )
