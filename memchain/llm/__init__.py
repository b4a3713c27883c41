"""
memchain LLM Client - Model access for LLMChain through litellm

Usage:
    from memchain.llm import LiteLLMClient

    client = LiteLLMClient(model="gpt-4o-mini", provider_name="openai")
    reply = await client.chat_completion([{"role": "user", "content": "Hi"}])

    async for chunk in client.stream_completion([{"role": "user", "content": "Hi"}]):
        print(chunk.content, end="")
"""

from .base import BaseLLMClient, LLMConfig, LLMResponse, StopReason, StreamChunk, Usage
from .litellm_client import LiteLLMClient, litellm_model_name, resolve_api_key

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "StopReason",
    "StreamChunk",
    "Usage",
    "LiteLLMClient",
    "litellm_model_name",
    "resolve_api_key",
]
