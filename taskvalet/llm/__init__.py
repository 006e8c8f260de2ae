"""
TaskValet LLM Client - LLM collaborator for the agent loop, via litellm

Usage:
    from taskvalet.llm import LiteLLMClient, LLMConfig

    client = LiteLLMClient(LLMConfig(model="gpt-4o-mini"), provider_name="openai")
    text = await client.generate("Hello!")
"""

from .base import BaseLLMClient, LLMConfig, LLMResponse, Usage
from .litellm_client import LiteLLMClient, build_litellm_model_string

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "Usage",
    "LiteLLMClient",
    "build_litellm_model_string",
]
