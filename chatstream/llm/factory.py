"""
LLM Provider Factory - Creates the relay's configured provider.
"""

from typing import Any, Optional
from .base import LLMProvider
from .openai_provider import OpenAICompatibleProvider

PROVIDER_DEFAULTS = {
    "openai": {
        "model": "gpt-4o",
        "base_url": "https://api.openai.com/v1",
    },
    "gemini": {
        "model": "gemini-2.5-flash",
        "base_url": "https://generativelanguage.googleapis.com/v1beta/openai",
    },
}


def create_llm_provider(
    provider: str = "gemini",
    api_key: str = "",
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> Optional[LLMProvider]:
    """
    Create an LLM provider instance based on configuration.

    Args:
        provider: Provider name ("gemini" or "openai")
        api_key: API key for the provider
        model: Model name (uses provider default if not specified)
        base_url: Custom base URL (uses provider default if not specified)
        **kwargs: Additional provider-specific parameters

    Returns:
        LLMProvider instance, or None if api_key is not configured

    Raises:
        ValueError: unknown provider name
    """
    if provider not in PROVIDER_DEFAULTS:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    if not api_key:
        return None

    params = dict(PROVIDER_DEFAULTS[provider])
    if model:
        params["model"] = model
    if base_url:
        params["base_url"] = base_url
    params.update(kwargs)
    return OpenAICompatibleProvider(api_key=api_key, provider_name=provider, **params)


def create_provider_from_settings(config: Any) -> Optional[LLMProvider]:
    """Build the provider from Settings, accepting the legacy GOOGLE_GEN_AI_KEY."""
    return create_llm_provider(
        provider=config.llm_provider,
        api_key=config.llm_api_key or config.google_gen_ai_key or "",
        model=config.llm_model,
        base_url=config.llm_base_url,
        log_calls=config.log_llm_calls,
    )
