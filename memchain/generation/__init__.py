"""
memchain Generation - Collaborators that produce response text
"""

from .base import (
    GenerationCollaborator,
    GenerationInput,
    GenerationResult,
    WordStreamMixin,
    response_text,
)
from .llm_chain import LLMChain

__all__ = [
    "GenerationCollaborator",
    "GenerationInput",
    "GenerationResult",
    "WordStreamMixin",
    "response_text",
    "LLMChain",
]
