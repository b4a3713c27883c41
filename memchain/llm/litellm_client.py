"""
memchain LiteLLM Client - BaseLLMClient on top of litellm

litellm routes every provider through one call; this module only decides
the routed model name, the API key, and how replies map back to memchain
types. See https://docs.litellm.ai/docs/providers
"""

import logging
import os
from typing import Any, AsyncIterator, Dict, NamedTuple, Optional

from .base import BaseLLMClient, LLMConfig, LLMResponse, Messages, StopReason, StreamChunk, Usage

logger = logging.getLogger(__name__)


class _Provider(NamedTuple):
    prefix: str
    key_env: Optional[str]


_PROVIDERS: Dict[str, _Provider] = {
    "openai": _Provider("", "OPENAI_API_KEY"),
    "anthropic": _Provider("anthropic/", "ANTHROPIC_API_KEY"),
    "azure": _Provider("azure/", "AZURE_OPENAI_API_KEY"),
    "gemini": _Provider("gemini/", "GOOGLE_API_KEY"),
    "ollama": _Provider("ollama/", None),
    # OpenAI-compatible endpoint, needs base_url
    "dashscope": _Provider("openai/", "DASHSCOPE_API_KEY"),
}

_STOP_REASONS: Dict[str, StopReason] = {
    "length": StopReason.MAX_TOKENS,
    "max_tokens": StopReason.MAX_TOKENS,
    "content_filter": StopReason.CONTENT_FILTER,
    "stop_sequence": StopReason.STOP_SEQUENCE,
}


def litellm_model_name(provider: str, model: str) -> str:
    """Prefix model with the provider route; unknown providers pass through."""
    entry = _PROVIDERS.get(provider.lower())
    return (entry.prefix if entry else "") + model


def resolve_api_key(provider: str, api_key: Optional[str] = None) -> Optional[str]:
    """Explicit key first, then the provider's environment variable."""
    if api_key:
        return api_key
    entry = _PROVIDERS.get(provider.lower())
    if entry and entry.key_env:
        return os.environ.get(entry.key_env)
    return None


def stop_reason(finish_reason: Optional[str]) -> StopReason:
    return _STOP_REASONS.get(finish_reason or "", StopReason.END_TURN)


def _usage(raw: Any) -> Optional[Usage]:
    if not raw:
        return None
    return Usage(
        prompt_tokens=raw.prompt_tokens,
        completion_tokens=raw.completion_tokens,
        total_tokens=raw.total_tokens,
    )


class LiteLLMClient(BaseLLMClient):
    """
    Example:
        client = LiteLLMClient(model="claude-3-5-sonnet-20241022", provider_name="anthropic")
        reply = await client.chat_completion([{"role": "user", "content": "Hi"}])
    """

    def __init__(self, config: Optional[LLMConfig] = None, provider_name: str = "openai", **kwargs: Any):
        if config is None and "model" not in kwargs:
            raise ValueError("model is required")
        super().__init__(config, **kwargs)
        self.provider = provider_name.lower()
        self.model_name = litellm_model_name(self.provider, self.config.model)
        self.api_key = resolve_api_key(self.provider, self.config.api_key)
        logger.info(f"LiteLLMClient ready: provider={self.provider}, model={self.model_name}")

    def request(self, messages: Messages, **overrides: Any) -> Dict[str, Any]:
        """Keyword arguments for one litellm.acompletion call"""
        request: Dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "timeout": self.config.timeout,
            "num_retries": self.config.max_retries,
            **self.config.sampling_params(**overrides),
        }
        if self.config.base_url:
            request["api_base"] = self.config.base_url
        if self.api_key:
            request["api_key"] = self.api_key
        if "stop" in overrides:
            request["stop"] = overrides["stop"]
        request.update(self.config.extra)
        return request

    async def chat_completion(self, messages: Messages, **overrides: Any) -> LLMResponse:
        import litellm

        response = await litellm.acompletion(**self.request(messages, **overrides))
        choice = response.choices[0]
        logger.debug(f"{self.model_name} replied, finish_reason={choice.finish_reason}")
        return LLMResponse(
            content=choice.message.content or "",
            stop_reason=stop_reason(choice.finish_reason),
            usage=_usage(getattr(response, "usage", None)),
            model=getattr(response, "model", None) or self.config.model,
        )

    async def stream_completion(self, messages: Messages, **overrides: Any) -> AsyncIterator[StreamChunk]:
        import litellm

        request = self.request(messages, **overrides)
        request["stream"] = True
        request["stream_options"] = {"include_usage": True}

        response = await litellm.acompletion(**request)
        async for chunk in response:
            if not chunk.choices:
                # Trailing usage-only chunk
                usage = _usage(getattr(chunk, "usage", None))
                if usage is not None:
                    yield StreamChunk(usage=usage)
                continue
            choice = chunk.choices[0]
            yield StreamChunk(
                content=choice.delta.content or "",
                stop_reason=stop_reason(choice.finish_reason) if choice.finish_reason else None,
            )
