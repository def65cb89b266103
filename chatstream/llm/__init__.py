"""LLM module - provider interface used by the relay service."""

from .base import LLMProvider, LLMMessage
from .openai_provider import OpenAICompatibleProvider
from .factory import create_llm_provider, create_provider_from_settings

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'OpenAICompatibleProvider',
    'create_llm_provider',
    'create_provider_from_settings',
]
