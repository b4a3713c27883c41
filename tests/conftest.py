"""Shared fixtures: scripted generation collaborators and stores."""

import re
from typing import Callable, List, Optional

import pytest
from langchain_core.embeddings import Embeddings

from memchain.checkpoint.storage import MemoryStorage
from memchain.generation.base import GenerationCollaborator, GenerationInput, GenerationResult


class ScriptedGenerator(GenerationCollaborator):
    """
    Collaborator with a fixed (or input-dependent) answer.

    Args:
        fragments: Fragments to stream; invoke() returns their concatenation
        respond: Optional callable computing the fragments from the input
        fail_after: Raise `error` after this many fragments have been streamed
        error: Exception raised on failure (also raised by invoke when set
            together with fail_after)
    """

    def __init__(
        self,
        fragments: Optional[List[str]] = None,
        respond: Optional[Callable[[GenerationInput], List[str]]] = None,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self.fragments = fragments or []
        self.respond = respond
        self.fail_after = fail_after
        self.error = error or RuntimeError("backend exploded")
        self.inputs: List[GenerationInput] = []
        self.yielded = 0
        self.closed = False

    def _fragments_for(self, input: GenerationInput) -> List[str]:
        if self.respond is not None:
            return self.respond(input)
        return list(self.fragments)

    async def invoke(self, input: GenerationInput) -> GenerationResult:
        self.inputs.append(input)
        if self.fail_after is not None:
            raise self.error
        return GenerationResult(text="".join(self._fragments_for(input)))

    async def stream(self, input: GenerationInput):
        self.inputs.append(input)
        try:
            for i, fragment in enumerate(self._fragments_for(input)):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.error
                self.yielded += 1
                yield fragment
            if self.fail_after is not None and self.fail_after >= self.yielded:
                raise self.error
        finally:
            self.closed = True


class WordCountEmbeddings(Embeddings):
    """Bag-of-words vectors over a fixed vocabulary; similar wording, similar vector"""

    VOCABULARY = (
        "julia", "drinks", "likes", "tea", "green", "every", "morning", "dogs",
        "bark", "berlin", "capital", "germany", "cats", "purr", "coffee", "black",
    )

    def _embed(self, text: str) -> List[float]:
        words = re.findall(r"\w+", text.lower())
        return [float(words.count(term)) for term in self.VOCABULARY]

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> List[float]:
        return self._embed(text)


def remember_name(input: GenerationInput) -> List[str]:
    """Answers from the transcript, like a model with working memory would"""
    if "What is my name?" in input.message:
        if "My name is Julia." in input.transcript:
            return ["Your ", "name ", "is ", "Julia."]
        return ["I ", "don't ", "know."]
    return ["Nice ", "to ", "meet ", "you."]


@pytest.fixture
def store():
    return MemoryStorage()


@pytest.fixture
def generator():
    return ScriptedGenerator(fragments=["Hello", " ", "world", "!"])


@pytest.fixture
def embeddings():
    return WordCountEmbeddings()
