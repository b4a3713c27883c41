"""
memchain Retrieval - Optional context for generation, on langchain

Provides:
- to_documents, text_splitter, split_text, split_documents
- LiteLLMEmbeddings for langchain vector stores
- RetrievalContext, create_memory_store
- Document, VectorStore, InMemoryVectorStore re-exported from langchain_core
"""

from langchain_core.documents import Document
from langchain_core.vectorstores import InMemoryVectorStore, VectorStore

from .context import DOCUMENT_SEPARATOR, RetrievalContext, create_memory_store
from .embeddings import LiteLLMEmbeddings
from .models import split_documents, split_text, text_splitter, to_documents

__all__ = [
    "Document",
    "to_documents",
    "text_splitter",
    "split_text",
    "split_documents",
    "VectorStore",
    "InMemoryVectorStore",
    "LiteLLMEmbeddings",
    "RetrievalContext",
    "create_memory_store",
    "DOCUMENT_SEPARATOR",
]
