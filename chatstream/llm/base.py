"""
LLM Provider Base - Abstract base for the relay's model backends.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, Dict, List, Optional
from dataclasses import dataclass

# Chat roles on the wire ("user" | "model") mapped to provider roles.
PROVIDER_ROLES = {"user": "user", "model": "assistant", "system": "system"}


@dataclass
class LLMMessage:
    """A message in provider terms."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def from_chat(role: str, text: str) -> "LLMMessage":
        """Create a provider message from a chat-history role and text."""
        return LLMMessage(role=PROVIDER_ROLES.get(role, role), content=text)


class LLMProvider(ABC):
    """
    Abstract base class for streaming LLM providers.
    """

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 2048):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        """
        Stream chat completion fragments.

        Args:
            messages: Conversation so far, newest last
            temperature: Sampling temperature override
            max_tokens: Max tokens override
            **kwargs: Additional provider-specific parameters

        Yields:
            str: Text fragments in generation order
        """
        pass

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [{"role": m.role, "content": m.content} for m in messages]
