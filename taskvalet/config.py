"""
TaskValet Configuration - YAML file loading and validation

Example config.yaml:

    llm:
      provider: openai
      model: gpt-4o-mini
      api_key: ${OPENAI_API_KEY}

    agent:
      max_iterations: 5
      default_timezone: America/New_York

    context:
      ttl_seconds: 3600
"""

import logging
import os
import re
from datetime import timedelta
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .agent.loop import AgentLoopConfig
from .constants import (
    CONTEXT_TTL_SECONDS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_RESPONSE_CHAR_BUDGET,
)
from .llm.base import LLMConfig

logger = logging.getLogger(__name__)

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


class LLMSettings(BaseModel):
    provider: str
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, gt=0)
    timeout: int = Field(default=60, gt=0)
    max_retries: int = Field(default=2, ge=0)

    @field_validator("provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.strip().lower()

    def to_llm_config(self) -> LLMConfig:
        return LLMConfig(
            api_key=self.api_key,
            model=self.model,
            base_url=self.base_url,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )


class AgentSettings(BaseModel):
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1, le=20)
    response_char_budget: int = Field(default=DEFAULT_RESPONSE_CHAR_BUDGET, gt=0)
    default_timezone: str = "UTC"

    def to_loop_config(self) -> AgentLoopConfig:
        return AgentLoopConfig(
            max_iterations=self.max_iterations,
            response_char_budget=self.response_char_budget,
        )


class ContextSettings(BaseModel):
    ttl_seconds: int = Field(default=CONTEXT_TTL_SECONDS, gt=0)
    cleanup_interval_seconds: int = Field(default=300, ge=0)

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


class TaskValetConfig(BaseModel):
    """Validated application configuration."""

    llm: LLMSettings
    agent: AgentSettings = Field(default_factory=AgentSettings)
    context: ContextSettings = Field(default_factory=ContextSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskValetConfig":
        return cls.model_validate(data or {})


def substitute_env_vars(raw: str, source: str = "<string>") -> str:
    """Replace ${VAR} with environment variable values."""

    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{source}')"
            )
        return value

    return _ENV_VAR_RE.sub(_replace_env, raw)


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    return yaml.safe_load(substitute_env_vars(raw, path)) or {}


def load_config(path: str) -> TaskValetConfig:
    """
    Load and validate a YAML config file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a referenced environment variable is not set
        pydantic.ValidationError: If the content does not match the schema
    """
    config = TaskValetConfig.from_dict(_load_config(path))
    logger.info(
        f"Loaded config from {path}: provider={config.llm.provider}, "
        f"model={config.llm.model}"
    )
    return config
