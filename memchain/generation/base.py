"""
memchain Generation - Contract for the collaborator that produces responses

This module provides:
- GenerationInput: what a turn hands to the collaborator
- GenerationResult: standardized one-shot result
- GenerationCollaborator: abstract base class (invoke + stream)
- WordStreamMixin: derive stream() from invoke() by replaying words
- response_text: normalize any invoke() result to the text to persist
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Union

from ..checkpoint.models import content_to_text
from ..streaming.fragments import stream_words


@dataclass
class GenerationInput:
    """
    Input for one generation call.

    Attributes:
        message: The new user message
        transcript: Rendered prior conversation ("" for a new thread)
        variables: Extra caller-supplied variables (rendered as system context)
        context: Retrieved context text, if any
    """
    message: str
    transcript: str = ""
    variables: Dict[str, Any] = field(default_factory=dict)
    context: Optional[str] = None

    @property
    def prompt_text(self) -> str:
        """The user turn as sent to a model, prefixed by the transcript when there is one"""
        if self.transcript:
            return f"{self.transcript}\n\nUser: {self.message}"
        return self.message


@dataclass
class GenerationResult:
    """
    Standardized one-shot result.

    Attributes:
        text: Response text (what gets persisted)
        data: Optional structured value produced alongside the text
    """
    text: str
    data: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "data": self.data}


InvokeResult = Union[GenerationResult, str, Mapping[str, Any], Any]


def response_text(result: InvokeResult) -> str:
    """
    Extract the text to persist from an invoke() result.

    GenerationResult -> .text, str -> itself, mapping with "output" -> that
    value, anything else -> canonical JSON.
    """
    if isinstance(result, GenerationResult):
        return result.text
    if isinstance(result, str):
        return result
    if isinstance(result, Mapping) and "output" in result:
        return content_to_text(result["output"])
    return json.dumps(result, sort_keys=True, ensure_ascii=False, default=str)


class GenerationCollaborator(ABC):
    """
    Abstract base class for generation backends.

    stream() must be finite and not restartable; iterating it fully must be
    equivalent to invoke() returning the concatenation of its fragments.
    """

    @abstractmethod
    async def invoke(self, input: GenerationInput) -> InvokeResult:
        """Generate a complete response"""
        pass

    @abstractmethod
    def stream(self, input: GenerationInput) -> AsyncIterator[str]:
        """Generate a response as a sequence of text fragments"""
        pass


class WordStreamMixin:
    """
    Gives an invoke()-only collaborator a stream() that replays the final
    answer word by word, each word followed by a space.

    Set `stream_delay` (seconds) to pace the words for incremental rendering.
    """

    stream_delay: float = 0.0

    async def stream(self, input: GenerationInput) -> AsyncIterator[str]:
        result = await self.invoke(input)
        async for fragment in stream_words(response_text(result), self.stream_delay):
            yield fragment
