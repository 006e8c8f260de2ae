"""
TaskValet LiteLLM Client - one client for every supported provider

litellm routes on a prefixed model string ("anthropic/claude-...") and
handles retries and timeouts, so this module only maps configuration
onto ``litellm.acompletion`` and its response onto LLMResponse.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import litellm

from .base import BaseLLMClient, LLMConfig, LLMResponse, Usage

logger = logging.getLogger(__name__)

# Provider -> environment variable holding its API key
_PROVIDER_ENV_VARS: Dict[str, Optional[str]] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "ollama": None,
}

# Providers litellm addresses as "<provider>/<model>"
_PREFIXED_PROVIDERS = ("anthropic", "azure", "gemini", "ollama")


def build_litellm_model_string(provider: str, model: str) -> str:
    """Map provider + model to the model string litellm routes on.

    See https://docs.litellm.ai/docs/providers

    Args:
        provider: openai, anthropic, azure, gemini or ollama; anything else
            is passed through untouched.
        model: Provider model name (e.g. "gpt-4o-mini").

    Returns:
        litellm-compatible model string.
    """
    provider = provider.lower()
    if provider in _PREFIXED_PROVIDERS and not model.startswith(f"{provider}/"):
        return f"{provider}/{model}"
    return model


def _usage_from(response: Any) -> Optional[Usage]:
    usage = getattr(response, "usage", None)
    if not usage:
        return None
    return Usage(
        prompt_tokens=usage.prompt_tokens or 0,
        completion_tokens=usage.completion_tokens or 0,
        total_tokens=usage.total_tokens or 0,
    )


class LiteLLMClient(BaseLLMClient):
    """
    LLM client backed by ``litellm.acompletion``.

    Example:
        from taskvalet.llm import LiteLLMClient, LLMConfig

        client = LiteLLMClient(LLMConfig(model="gpt-4o-mini"), provider_name="openai")
        text = await client.generate("Say hello")
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider_name: str = "openai",
        **overrides,
    ):
        """
        Args:
            config: Client settings
            provider_name: openai, anthropic, azure, gemini or ollama
            **overrides: LLMConfig fields; ``model`` is required without ``config``
        """
        if config is None and "model" not in overrides:
            raise ValueError("model is required")

        super().__init__(config, **overrides)

        self.provider = provider_name.lower()
        self._litellm_model = build_litellm_model_string(self.provider, self.config.model)

        api_key = self.config.api_key
        if not api_key and _PROVIDER_ENV_VARS.get(self.provider):
            api_key = os.environ.get(_PROVIDER_ENV_VARS[self.provider])

        # Connection kwargs sent with every request
        self._base_kwargs: Dict[str, Any] = {}
        if self.config.base_url:
            self._base_kwargs["api_base"] = self.config.base_url
        if api_key:
            self._base_kwargs["api_key"] = api_key

        logger.info(
            f"LiteLLMClient ready: provider={self.provider}, model={self._litellm_model}"
        )

    @property
    def litellm_model(self) -> str:
        return self._litellm_model

    def _request_params(self, messages: List[Dict[str, Any]], overrides: Dict[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": overrides.pop("model", None) or self._litellm_model,
            "messages": messages,
            **self.config.sampling_params(),
            "timeout": self.config.timeout,
            "num_retries": self.config.max_retries,
            **self.config.extra,
        }
        params.update(overrides)
        params.update(self._base_kwargs)
        return params

    async def _call_api(self, messages: List[Dict[str, Any]], **kwargs) -> LLMResponse:
        params = self._request_params(messages, dict(kwargs))
        logger.debug(f"litellm.acompletion model={params['model']} messages={len(messages)}")

        response = await litellm.acompletion(**params)

        choice = response.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            usage=_usage_from(response),
            model=getattr(response, "model", None) or self.config.model,
            raw_response=response,
        )
