"""
memchain LLM Chain - Generation collaborator backed by an LLM client

Builds the prompt for one turn (system prompt, retrieved context, caller
variables, transcript + new message) and sends it through a BaseLLMClient.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from langchain_core.vectorstores import VectorStore

from ..llm.base import BaseLLMClient
from ..retrieval.context import DEFAULT_K, RetrievalContext
from .base import GenerationCollaborator, GenerationInput, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
CONTEXT_HEADER = "Relevant context:\n"


def format_variable(key: str, value: Any) -> str:
    """Render one caller variable as a system line"""
    if isinstance(value, (dict, list, tuple)):
        value = json.dumps(value, ensure_ascii=False, default=str)
    return f"{key}: {value}"


class LLMChain(GenerationCollaborator):
    """
    Prompt + LLM client.

    Example:
        client = LiteLLMClient(model="gpt-4o-mini")
        chain = LLMChain(client, system_prompt="You are terse.")
        result = await chain.invoke(GenerationInput(message="Hi"))
    """

    def __init__(
        self,
        client: BaseLLMClient,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        retrieval_k: int = DEFAULT_K,
        retrieval: Optional[RetrievalContext] = None,
    ):
        self.client = client
        self.system_prompt = system_prompt
        self.retrieval = retrieval or RetrievalContext(k=retrieval_k)

    # Retrieval context, forwarded from MemoryChain

    def set_context(self, store: VectorStore) -> None:
        self.retrieval.set_context(store)

    async def add_context(self, data: Iterable[Any]) -> None:
        await self.retrieval.add_context(data)

    def clear_context(self) -> None:
        self.retrieval.clear_context()

    async def build_messages(self, input: GenerationInput) -> List[Dict[str, Any]]:
        """Assemble the chat messages for one call"""
        messages: List[Dict[str, Any]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})

        context = input.context
        if context is None:
            context = await self.retrieval.retrieve(input.message)
        if context:
            messages.append({"role": "system", "content": CONTEXT_HEADER + context})

        for key, value in input.variables.items():
            messages.append({"role": "system", "content": format_variable(key, value)})

        messages.append({"role": "user", "content": input.prompt_text})
        return messages

    async def invoke(self, input: GenerationInput) -> GenerationResult:
        messages = await self.build_messages(input)
        response = await self.client.chat_completion(messages)
        logger.debug(f"LLMChain invoke: {len(response.content)} chars, stop={response.stop_reason.value}")
        return GenerationResult(
            text=response.content,
            data={"usage": response.usage.to_dict()} if response.usage else None,
        )

    async def stream(self, input: GenerationInput) -> AsyncIterator[str]:
        messages = await self.build_messages(input)
        async for chunk in self.client.stream_completion(messages):
            if chunk.content:
                yield chunk.content
