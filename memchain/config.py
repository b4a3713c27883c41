"""
memchain Config - Load chain configuration from YAML

Config file example:

    llm:
      provider: openai
      model: gpt-4o-mini
      api_key: ${OPENAI_API_KEY}
    system_prompt: You are a helpful assistant.
    storage:
      backend: postgres
      dsn: ${DATABASE_URL}
    streaming:
      delay: 0.02
    retrieval:
      k: 3
      embedding_model: text-embedding-3-small

`${VAR}` is replaced with the environment variable VAR before parsing.
"""

import logging
import os
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


class LLMSettings(BaseModel):
    """LLM provider configuration"""
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: int = 60
    extra: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class StorageSettings(BaseModel):
    """Checkpoint store configuration"""
    backend: Literal["memory", "postgres"] = "memory"
    dsn: Optional[str] = None
    max_versions_per_thread: int = 1000

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _dsn_required_for_postgres(self) -> "StorageSettings":
        if self.backend == "postgres" and not self.dsn:
            raise ValueError("storage.dsn is required for the postgres backend")
        return self


class StreamingSettings(BaseModel):
    """Pacing between streamed fragments (seconds, 0 disables)"""
    delay: float = Field(default=0.0, ge=0.0)

    model_config = ConfigDict(extra="ignore")


class RetrievalSettings(BaseModel):
    """Context block size; an embedding_model starts the chain with an in-memory store"""
    k: int = Field(default=3, ge=1)
    embedding_model: Optional[str] = None
    # Defaults to llm.provider
    embedding_provider: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class MemChainConfig(BaseModel):
    """Top-level configuration for MemoryChain.from_config"""
    llm: LLMSettings = Field(default_factory=LLMSettings)
    system_prompt: str = "You are a helpful assistant."
    storage: StorageSettings = Field(default_factory=StorageSettings)
    streaming: StreamingSettings = Field(default_factory=StreamingSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MemChainConfig":
        """Validate a raw mapping; errors surface as ConfigurationError"""
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid memchain config: {e}") from e


def substitute_env(raw: str, source: str = "<string>") -> str:
    """Replace ${VAR} with environment variable values"""
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{source}')"
            )
        return value

    return _ENV_PATTERN.sub(_replace_env, raw)


def load_config(path: str) -> MemChainConfig:
    """Read a YAML config file with ${VAR} environment variable substitution."""
    import yaml

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file '{path}': {e}") from e

    try:
        data = yaml.safe_load(substitute_env(raw, path))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in '{path}': {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"Config file '{path}' must contain a mapping")

    logger.info(f"Loaded memchain config from {path}")
    return MemChainConfig.from_dict(data)
