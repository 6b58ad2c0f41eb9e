# src/llm/base_client.py — v1
"""Abstract LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from filethetic.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all text-generation providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        model: str | None = None,
    ) -> LLMResponse:
        """Plain-text completion. ``model`` overrides the client default."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic)."""
