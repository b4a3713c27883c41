"""
memchain Retrieval Context - Optional knowledge a chain can draw on

This module provides:
- RetrievalContext: holds the active langchain vector store and turns a
  query into a context block
- create_memory_store: chunk caller data into a fresh InMemoryVectorStore
"""

import logging
from typing import Any, Iterable, Optional

from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore, VectorStore

from ..errors import ConfigurationError
from .models import split_documents, to_documents

logger = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n\n---\n\n"
DEFAULT_K = 3


async def create_memory_store(data: Iterable[Any], embedding: Embeddings) -> InMemoryVectorStore:
    """Split data into 500/50 chunks and embed them into a new in-memory store"""
    store = InMemoryVectorStore(embedding)
    docs = split_documents(to_documents(data))
    if docs:
        await store.aadd_documents(docs)
    return store


class RetrievalContext:
    """
    Holds the vector store used to enrich generation input.

    Example:
        context = RetrievalContext()
        context.set_context(InMemoryVectorStore(LiteLLMEmbeddings()))
        await context.add_context(["Julia likes tea.", {"city": "Berlin"}])
        block = await context.retrieve("What does Julia like?")
    """

    def __init__(self, store: Optional[VectorStore] = None, k: int = DEFAULT_K):
        self.store = store
        self.k = k
        self.times_added = 0

    @property
    def has_context(self) -> bool:
        return self.store is not None

    def set_context(self, store: VectorStore) -> None:
        """Use store for retrieval from now on"""
        logger.info(f"Setting retrieval context ({type(store).__name__})")
        self.store = store

    async def add_context(self, data: Iterable[Any]) -> None:
        """
        Chunk caller data and add it to the active store.

        Raises:
            ConfigurationError: if no store has been set
        """
        if self.store is None:
            raise ConfigurationError("Cannot add context, no vector store set")
        docs = split_documents(to_documents(data))
        if docs:
            await self.store.aadd_documents(docs)
        self.times_added += 1
        logger.info(
            f"Added context {self.times_added} "
            f"{'time' if self.times_added == 1 else 'times'}"
        )

    def clear_context(self) -> None:
        """Drop the store and reset the addition counter"""
        self.store = None
        self.times_added = 0
        logger.info("Context cleared")

    async def retrieve(self, query: str) -> Optional[str]:
        """Return the k most similar documents joined into one block, or None"""
        if self.store is None:
            return None
        docs = await self.store.asimilarity_search(query, k=self.k)
        if not docs:
            return None
        return DOCUMENT_SEPARATOR.join(doc.page_content for doc in docs)
