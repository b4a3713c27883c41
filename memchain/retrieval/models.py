"""
memchain Retrieval Models - Documents and chunking

This module provides:
- to_documents: turn arbitrary caller data into langchain Documents
- text_splitter / split_text / split_documents: overlapping chunks via
  langchain's RecursiveCharacterTextSplitter
"""

import json
from typing import Any, Iterable, List

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 50


def to_documents(items: Iterable[Any]) -> List[Document]:
    """Strings are kept as-is, anything else becomes indented JSON."""
    docs = []
    for item in items:
        if isinstance(item, Document):
            docs.append(item)
        elif isinstance(item, str):
            docs.append(Document(page_content=item))
        else:
            docs.append(Document(
                page_content=json.dumps(item, indent=2, ensure_ascii=False, default=str)
            ))
    return docs


def text_splitter(
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> RecursiveCharacterTextSplitter:
    """
    Splitter preferring paragraph breaks, then line breaks, then spaces.

    Raises:
        ValueError: chunk_size not positive, or overlap outside [0, chunk_size)
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not 0 <= chunk_overlap < chunk_size:
        raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
    return RecursiveCharacterTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)


def split_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[str]:
    return text_splitter(chunk_size, chunk_overlap).split_text(text)


def split_documents(
    docs: Iterable[Document],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[Document]:
    """Split each document; every chunk keeps its source metadata."""
    return text_splitter(chunk_size, chunk_overlap).split_documents(list(docs))
