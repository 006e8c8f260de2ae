"""
TaskValet LLM Client Base - shared types for the LLM collaborator

The agent loop only calls ``generate(prompt) -> str``. Clients built on
BaseLLMClient get that method for free by implementing ``_call_api``,
and additionally expose the chat-style request used underneath.

Contents:
- LLMConfig: Model and transport settings
- LLMResponse / Usage: What a provider call returns
- BaseLLMClient: Abstract client
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# finish_reason values meaning the output was cut off
TRUNCATION_REASONS = ("length", "max_tokens")


@dataclass
class LLMConfig:
    """
    Model and transport settings for an LLM client.

    Attributes:
        model: Provider model name (e.g., "gpt-4o-mini")
        api_key: Provider API key; clients may fall back to the environment
        base_url: Alternative endpoint (proxies, local servers)
        temperature: Sampling temperature; low values keep tool JSON stable
        max_tokens: Output cap; long answers are cut off, not rejected
        timeout: Seconds before a single request is abandoned
        max_retries: Transient-failure retries inside one generate() call
        extra: Provider-specific options passed through untouched
    """
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.2
    max_tokens: int = 1024
    timeout: int = 60
    max_retries: int = 2
    extra: Dict[str, Any] = field(default_factory=dict)

    def sampling_params(self) -> Dict[str, Any]:
        return {"temperature": self.temperature, "max_tokens": self.max_tokens}


@dataclass
class Usage:
    """Token counts for one call, or summed over many."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "Usage") -> None:
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """
    Result of one provider call.

    Attributes:
        content: Generated text (empty string when the provider sent none)
        finish_reason: Provider's stop reason, as reported
        usage: Token counts, when the provider reports them
        model: Model that actually served the request
        raw_response: Provider object, kept for debugging
    """
    content: str
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None
    model: Optional[str] = None
    raw_response: Optional[Any] = field(default=None, repr=False)

    @property
    def truncated(self) -> bool:
        return self.finish_reason in TRUNCATION_REASONS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "finish_reason": self.finish_reason,
            "usage": self.usage.to_dict() if self.usage else None,
            "model": self.model,
        }


class BaseLLMClient(ABC):
    """
    Abstract LLM client.

    Subclasses implement ``_call_api``; retries and timeouts belong there,
    so a single ``generate`` either returns text or raises.

    Example:
        class EchoClient(BaseLLMClient):
            provider = "echo"

            async def _call_api(self, messages, **kwargs):
                return LLMResponse(content=messages[-1]["content"])

        text = await EchoClient(model="echo").generate("hi")
    """

    provider: str = "unknown"

    def __init__(self, config: Optional[LLMConfig] = None, **overrides):
        """
        Args:
            config: Client settings; built from ``overrides`` when omitted
            **overrides: LLMConfig fields to replace (unknown names are ignored)
        """
        if config is None:
            config = LLMConfig(**overrides)
        else:
            for name, value in overrides.items():
                if hasattr(config, name):
                    setattr(config, name, value)

        self.config = config
        self.total_usage = Usage()

    @abstractmethod
    async def _call_api(self, messages: List[Dict[str, Any]], **kwargs) -> LLMResponse:
        """
        Send one request to the provider.

        Args:
            messages: Chat messages (``role`` / ``content`` dicts)
            **kwargs: Per-request overrides (temperature, max_tokens, stop, ...)
        """

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Chat-style request.

        Args:
            messages: Chat messages
            config: Per-request overrides, merged over ``kwargs``
            **kwargs: Per-request overrides

        Returns:
            LLMResponse; usage is also added to ``total_usage``
        """
        request_kwargs = dict(kwargs, **(config or {}))
        response = await self._call_api(messages, **request_kwargs)
        if response.usage is not None:
            self.total_usage.add(response.usage)
        return response

    async def generate(self, prompt: str) -> str:
        """Send ``prompt`` as a single user message and return the text."""
        response = await self.chat_completion([{"role": "user", "content": prompt}])
        if response.truncated:
            logger.warning(
                f"LLM output hit max_tokens={self.config.max_tokens} "
                f"({len(response.content or '')} chars returned)"
            )
        return response.content or ""

    async def close(self) -> None:
        """Release provider resources. Nothing to release by default."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
