"""
memchain LLM Client Base - What LLMChain needs from a model client

This module provides:
- LLMConfig: model and sampling settings
- LLMResponse / StreamChunk: one-shot reply and one streamed delta
- BaseLLMClient: chat_completion + stream_completion contract
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

Messages = List[Dict[str, Any]]


class StopReason(str, Enum):
    """Why the model stopped"""
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    CONTENT_FILTER = "content_filter"


# o-series and gpt-5 reject temperature/top_p and take max_completion_tokens
_REASONING_MODEL = re.compile(r"^(o\d|gpt-5)", re.IGNORECASE)


def is_reasoning_model(model: str) -> bool:
    return bool(_REASONING_MODEL.match(model))


@dataclass
class LLMConfig:
    """Model settings shared by every call a client makes"""
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 4096
    top_p: float = 1.0
    timeout: int = 60
    max_retries: int = 3
    # Passed straight to the provider call (e.g. api_version for Azure)
    extra: Dict[str, Any] = field(default_factory=dict)

    def sampling_params(self, **overrides: Any) -> Dict[str, Any]:
        """Token limit and sampling knobs for this model, overrides applied"""
        max_tokens = overrides.get("max_tokens", self.max_tokens)
        if is_reasoning_model(self.model):
            return {"max_completion_tokens": max_tokens}
        return {
            "max_tokens": max_tokens,
            "temperature": overrides.get("temperature", self.temperature),
            "top_p": overrides.get("top_p", self.top_p),
        }


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """A complete reply"""
    content: str
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[Usage] = None
    model: Optional[str] = None


@dataclass
class StreamChunk:
    """One streamed delta; the last chunk carries stop_reason and/or usage"""
    content: str = ""
    stop_reason: Optional[StopReason] = None
    usage: Optional[Usage] = None


class BaseLLMClient(ABC):
    """
    Model client used by LLMChain.

    Subclasses turn a list of chat messages into an LLMResponse, or into a
    stream of StreamChunk deltas. Keyword overrides (temperature, max_tokens,
    top_p, stop) apply to a single call.
    """

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs: Any):
        config = config or LLMConfig()
        for key, value in kwargs.items():
            if not hasattr(config, key):
                raise TypeError(f"Unknown LLM setting: {key}")
            setattr(config, key, value)
        self.config = config

    @abstractmethod
    async def chat_completion(self, messages: Messages, **overrides: Any) -> LLMResponse:
        ...

    @abstractmethod
    def stream_completion(self, messages: Messages, **overrides: Any) -> AsyncIterator[StreamChunk]:
        ...

    async def close(self) -> None:
        """Release client resources (nothing by default)"""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
