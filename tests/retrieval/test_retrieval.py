"""Tests for memchain.retrieval"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import litellm
import pytest

from memchain.errors import ConfigurationError
from memchain.retrieval import (
    DOCUMENT_SEPARATOR,
    Document,
    InMemoryVectorStore,
    LiteLLMEmbeddings,
    RetrievalContext,
    create_memory_store,
    split_documents,
    split_text,
    to_documents,
)


def _embedding_response(*vectors):
    return SimpleNamespace(
        data=[{"object": "embedding", "index": i, "embedding": v} for i, v in enumerate(vectors)]
    )


class TestToDocuments:
    def test_strings_and_objects(self):
        docs = to_documents(["plain", {"k": 1}])
        assert docs[0].page_content == "plain"
        assert docs[1].page_content == '{\n  "k": 1\n}'
        assert docs[1].metadata == {}

    def test_documents_kept(self):
        doc = Document(page_content="x", metadata={"source": "a"})
        assert to_documents([doc]) == [doc]


class TestSplitText:
    def test_short_text_single_chunk(self):
        assert split_text("short") == ["short"]

    def test_paragraphs_preferred(self):
        text = "A" * 30 + "\n\n" + "B" * 30 + "\n\n" + "C" * 30
        assert split_text(text, chunk_size=40, chunk_overlap=0) == ["A" * 30, "B" * 30, "C" * 30]

    def test_consecutive_chunks_overlap(self):
        chunks = split_text("one two three four five six", chunk_size=10, chunk_overlap=5)
        assert chunks[:2] == ["one two", "two three"]
        assert chunks[-1] == "five six"
        assert all(len(c) <= 10 for c in chunks)

    def test_long_word_is_cut(self):
        assert split_text("x" * 25, chunk_size=10, chunk_overlap=0) == ["x" * 10, "x" * 10, "x" * 5]

    def test_default_chunks_respect_size(self):
        text = " ".join(f"word{i}" for i in range(400))
        chunks = split_text(text)
        assert len(chunks) > 1
        assert all(len(c) <= 500 for c in chunks)

    def test_invalid_overlap(self):
        with pytest.raises(ValueError):
            split_text("abc", chunk_size=10, chunk_overlap=10)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            split_text("abc", chunk_size=0)

    def test_split_documents_copies_metadata(self):
        docs = split_documents(
            [Document(page_content="aa bb cc", metadata={"source": "s"})],
            chunk_size=5,
            chunk_overlap=0,
        )
        assert [d.page_content for d in docs] == ["aa bb", "cc"]
        assert all(d.metadata == {"source": "s"} for d in docs)


class TestLiteLLMEmbeddings:
    def test_request_routing(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
        embeddings = LiteLLMEmbeddings(model="text-embedding-004", provider_name="gemini")
        request = embeddings.request(["hi"])
        assert request == {"model": "gemini/text-embedding-004", "input": ["hi"], "api_key": "g-key"}

    async def test_async_embedding(self, monkeypatch):
        aembedding = AsyncMock(return_value=_embedding_response([1.0, 0.0], [0.0, 1.0]))
        monkeypatch.setattr(litellm, "aembedding", aembedding)

        embeddings = LiteLLMEmbeddings(api_key="k", base_url="http://proxy")
        assert await embeddings.aembed_documents(["a", "b"]) == [[1.0, 0.0], [0.0, 1.0]]
        assert aembedding.call_args.kwargs["api_base"] == "http://proxy"

        aembedding.return_value = _embedding_response([0.5, 0.5])
        assert await embeddings.aembed_query("q") == [0.5, 0.5]

    def test_sync_embedding(self, monkeypatch):
        embedding = MagicMock(return_value=_embedding_response([0.1, 0.2]))
        monkeypatch.setattr(litellm, "embedding", embedding)
        assert LiteLLMEmbeddings(api_key="k").embed_query("q") == [0.1, 0.2]
        assert embedding.call_args.kwargs["model"] == "text-embedding-3-small"

    async def test_no_texts_no_call(self, monkeypatch):
        aembedding = AsyncMock()
        monkeypatch.setattr(litellm, "aembedding", aembedding)
        assert await LiteLLMEmbeddings(api_key="k").aembed_documents([]) == []
        aembedding.assert_not_awaited()

    async def test_backs_in_memory_store(self, monkeypatch):
        vectors = {"tea": [1.0, 0.0], "dogs": [0.0, 1.0]}

        async def fake_aembedding(model, input, **kwargs):
            return _embedding_response(*[vectors[text] for text in input])

        monkeypatch.setattr(litellm, "aembedding", fake_aembedding)
        store = InMemoryVectorStore(LiteLLMEmbeddings(api_key="k"))
        await store.aadd_documents(to_documents(["tea", "dogs"]))
        results = await store.asimilarity_search("dogs", k=1)
        assert [d.page_content for d in results] == ["dogs"]


class TestInMemoryStore:
    async def test_ranks_by_similarity(self, embeddings):
        store = InMemoryVectorStore(embeddings)
        await store.aadd_documents(to_documents([
            "Julia drinks tea.",
            "Julia drinks green tea every morning.",
            "Dogs bark.",
        ]))
        results = await store.asimilarity_search("green tea morning", k=2)
        assert [d.page_content for d in results] == [
            "Julia drinks green tea every morning.",
            "Julia drinks tea.",
        ]

    async def test_create_memory_store_chunks_data(self, embeddings):
        long_text = " ".join(["tea"] * 300)
        store = await create_memory_store([long_text, {"drinks": "coffee"}], embeddings)
        results = await store.asimilarity_search("tea", k=10)
        assert len(results) > 2
        assert all(len(d.page_content) <= 500 for d in results)


class TestRetrievalContext:
    async def test_add_without_store(self):
        with pytest.raises(ConfigurationError):
            await RetrievalContext().add_context(["x"])

    async def test_add_and_retrieve(self, embeddings):
        context = RetrievalContext(k=2)
        context.set_context(InMemoryVectorStore(embeddings))
        await context.add_context(["Julia likes green tea.", "Cats purr."])
        await context.add_context(["coffee is black"])
        assert context.times_added == 2

        block = await context.retrieve("green tea")
        parts = block.split(DOCUMENT_SEPARATOR)
        assert len(parts) == 2
        assert parts[0] == "Julia likes green tea."

    async def test_retrieve_without_store(self):
        assert await RetrievalContext().retrieve("anything") is None

    async def test_retrieve_from_empty_store(self, embeddings):
        context = RetrievalContext(InMemoryVectorStore(embeddings))
        assert await context.retrieve("tea") is None

    async def test_clear(self, embeddings):
        context = RetrievalContext(InMemoryVectorStore(embeddings))
        await context.add_context(["x"])
        context.clear_context()
        assert context.has_context is False
        assert context.times_added == 0
