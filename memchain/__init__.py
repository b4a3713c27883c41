"""
memchain - Persistent conversation memory for LLM chains

memchain keeps every conversation thread as a sequence of versioned
checkpoints. Each turn, one-shot or streamed, loads the thread's history,
hands it to a generation collaborator, and persists the user message plus
the assistant response as the next version. Streamed turns are persisted
even when they fail or the consumer stops early.

Key Features:
- Versioned, append-only checkpoints per thread (memory or PostgreSQL)
- Streaming with guaranteed persistence of whatever was forwarded
- Built-in LLM chain (powered by litellm) with optional langchain retrieval context
- YAML configuration with ${VAR} environment substitution

Quick Start:
    from memchain import MemoryChain, MemoryStorage, LLMChain, LiteLLMClient

    client = LiteLLMClient(model="gpt-4o-mini", provider_name="openai")
    chain = MemoryChain(generator=LLMChain(client), store=MemoryStorage())

    await chain.invoke("t1", "My name is Julia.")

    async with chain.stream("t1", "What is my name?") as stream:
        async for fragment in stream:
            print(fragment, end="", flush=True)

From a config file:
    chain = MemoryChain.from_config("memchain.yaml")
    async with chain:
        answer = await chain.invoke("t1", "Hello!")
"""

__version__ = "0.1.0"

# Errors
from .errors import ConfigurationError, GenerationError, MemChainError, StoreError

# Checkpoints
from .checkpoint import (
    Checkpoint,
    CheckpointMetadata,
    CheckpointStorage,
    CheckpointSummary,
    MemoryStorage,
    Message,
    PostgreSQLStorage,
    Role,
)

# Core
from .chain import MemoryChain
from .history import HistoryReconstructor, HistorySnapshot
from .persistence import PersistenceGuarantor

# Streaming
from .streaming import EventEmitter, EventType, TurnEvent, TurnState, TurnStream

# Generation
from .generation import (
    GenerationCollaborator,
    GenerationInput,
    GenerationResult,
    LLMChain,
    WordStreamMixin,
)

# LLM Clients
from .llm import LiteLLMClient, LLMConfig, LLMResponse

# Retrieval
from .retrieval import Document, InMemoryVectorStore, LiteLLMEmbeddings, RetrievalContext

# Config
from .config import MemChainConfig, load_config

__all__ = [
    "__version__",
    # Errors
    "MemChainError", "ConfigurationError", "GenerationError", "StoreError",
    # Checkpoints
    "Role", "Message", "Checkpoint", "CheckpointMetadata", "CheckpointSummary",
    "CheckpointStorage", "MemoryStorage", "PostgreSQLStorage",
    # Core
    "MemoryChain", "HistoryReconstructor", "HistorySnapshot", "PersistenceGuarantor",
    # Streaming
    "EventEmitter", "EventType", "TurnEvent", "TurnState", "TurnStream",
    # Generation
    "GenerationCollaborator", "GenerationInput", "GenerationResult",
    "LLMChain", "WordStreamMixin",
    # LLM
    "LiteLLMClient", "LLMConfig", "LLMResponse",
    # Retrieval
    "Document", "InMemoryVectorStore", "LiteLLMEmbeddings", "RetrievalContext",
    # Config
    "MemChainConfig", "load_config",
]
