"""Tests for memchain.generation: input/result contract and LLMChain prompt building"""

import pytest
from unittest.mock import AsyncMock

from memchain.generation.base import (
    GenerationCollaborator,
    GenerationInput,
    GenerationResult,
    WordStreamMixin,
    response_text,
)
from memchain.generation.llm_chain import CONTEXT_HEADER, LLMChain, format_variable
from memchain.llm.base import LLMResponse, StreamChunk, Usage
from memchain.retrieval import InMemoryVectorStore


class FakeLLMClient:
    """Records messages; answers with fixed content"""

    def __init__(self, content="Answer", chunks=None):
        self.content = content
        self.chunks = chunks or ["An", "", "swer"]
        self.messages = []

    async def chat_completion(self, messages, **overrides):
        self.messages.append(messages)
        return LLMResponse(content=self.content, usage=Usage(total_tokens=7))

    async def stream_completion(self, messages, **overrides):
        self.messages.append(messages)
        for text in self.chunks:
            yield StreamChunk(content=text)


class Greeter(WordStreamMixin, GenerationCollaborator):
    async def invoke(self, input):
        return f"Hello {input.message}"


class TestGenerationInput:
    def test_prompt_text_without_history(self):
        assert GenerationInput(message="Hi").prompt_text == "Hi"

    def test_prompt_text_with_history(self):
        gen_input = GenerationInput(message="And now?", transcript="User: Hi\n\nAssistant: Hello")
        assert gen_input.prompt_text == "User: Hi\n\nAssistant: Hello\n\nUser: And now?"


class TestResponseText:
    def test_generation_result(self):
        assert response_text(GenerationResult(text="t", data={"x": 1})) == "t"

    def test_string(self):
        assert response_text("plain") == "plain"

    def test_mapping_with_output(self):
        assert response_text({"output": "done", "steps": []}) == "done"

    def test_other_values_as_json(self):
        assert response_text({"b": 2, "a": 1}) == '{"a": 1, "b": 2}'


class TestWordStreamMixin:
    async def test_streams_words_of_invoke_result(self):
        fragments = [f async for f in Greeter().stream(GenerationInput(message="Julia"))]
        assert fragments == ["Hello ", "Julia "]


class TestLLMChain:
    async def test_messages_layout(self):
        client = FakeLLMClient()
        chain = LLMChain(client, system_prompt="Be nice.")
        await chain.invoke(GenerationInput(
            message="Hi",
            transcript="User: Hey\n\nAssistant: Yo",
            variables={"user": "Julia", "prefs": {"tone": "formal"}},
        ))
        assert client.messages[0] == [
            {"role": "system", "content": "Be nice."},
            {"role": "system", "content": "user: Julia"},
            {"role": "system", "content": 'prefs: {"tone": "formal"}'},
            {"role": "user", "content": "User: Hey\n\nAssistant: Yo\n\nUser: Hi"},
        ]

    async def test_invoke_result(self):
        result = await LLMChain(FakeLLMClient()).invoke(GenerationInput(message="Hi"))
        assert result.text == "Answer"
        assert result.data["usage"]["total_tokens"] == 7

    async def test_stream_skips_empty_chunks(self):
        chain = LLMChain(FakeLLMClient())
        fragments = [f async for f in chain.stream(GenerationInput(message="Hi"))]
        assert fragments == ["An", "swer"]

    async def test_retrieved_context_block(self, embeddings):
        client = FakeLLMClient()
        chain = LLMChain(client, retrieval_k=1)
        chain.set_context(InMemoryVectorStore(embeddings))
        await chain.add_context(["Berlin is the capital of Germany.", "Cats purr."])

        await chain.invoke(GenerationInput(message="capital of Germany?"))
        system_lines = [m["content"] for m in client.messages[0] if m["role"] == "system"]
        assert CONTEXT_HEADER + "Berlin is the capital of Germany." in system_lines

    async def test_explicit_context_skips_retrieval(self):
        client = FakeLLMClient()
        chain = LLMChain(client)
        chain.retrieval.retrieve = AsyncMock()
        await chain.invoke(GenerationInput(message="Hi", context="given"))
        chain.retrieval.retrieve.assert_not_awaited()
        assert {"role": "system", "content": CONTEXT_HEADER + "given"} in client.messages[0]

    async def test_no_system_prompt(self):
        client = FakeLLMClient()
        await LLMChain(client, system_prompt="").invoke(GenerationInput(message="Hi"))
        assert client.messages[0] == [{"role": "user", "content": "Hi"}]

    def test_format_variable(self):
        assert format_variable("n", 3) == "n: 3"
        assert format_variable("tags", ["a", "b"]) == 'tags: ["a", "b"]'
