"""
memchain Chain - Conversation memory around a generation collaborator

This module provides:
- MemoryChain: loads a thread's history, runs one turn (one-shot or
  streamed) and persists it as the next checkpoint version
"""

import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional, Union

from langchain_core.vectorstores import VectorStore

from .checkpoint.storage import CheckpointStorage, MemoryStorage
from .config import MemChainConfig, load_config
from .errors import ConfigurationError, GenerationError, MemChainError
from .generation.base import GenerationCollaborator, GenerationInput, InvokeResult, response_text
from .history import HistoryReconstructor, HistorySnapshot
from .persistence import PersistenceGuarantor
from .streaming.engine import EventEmitter, StreamCoordinator, TurnScope, TurnStream
from .streaming.models import TurnState

logger = logging.getLogger(__name__)


class MemoryChain:
    """
    Runs turns on persistent conversation threads.

    Every completed, failed or abandoned turn with a non-empty response
    becomes exactly one new checkpoint version holding the user message and
    the assistant response. Threads never share state.

    Turns on the same thread must be serialized by the caller: two turns
    started concurrently read the same prior version. MemoryStorage then
    keeps both as separate snapshots of the same version number, while
    PostgreSQLStorage rejects the second write with StoreError.

    A stream the caller stopped iterating without closing is closed, and its
    partial text persisted, before the next invoke, stream or history call
    on the same thread reads the store.

    Example:
        chain = MemoryChain(generator=my_chain, store=MemoryStorage())
        answer = await chain.invoke("t1", "My name is Julia.")

        async with chain.stream("t1", "What is my name?") as stream:
            async for fragment in stream:
                print(fragment, end="", flush=True)
    """

    def __init__(
        self,
        generator: GenerationCollaborator,
        store: CheckpointStorage,
        config: Optional[MemChainConfig] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        if store is None:
            raise ConfigurationError("MemoryChain requires a checkpoint store")
        self.generator = generator
        self.store = store
        self.config = config or MemChainConfig()
        self.emitter = emitter

        self.reconstructor = HistoryReconstructor(store)
        self.guarantor = PersistenceGuarantor(store)
        self.coordinator = StreamCoordinator(
            self.guarantor, stream_delay=self.config.streaming.delay
        )
        # Streams handed out but not yet persisted, per thread
        self._open_streams: Dict[str, List[TurnStream]] = {}

    @classmethod
    def from_config(
        cls,
        config: Union[MemChainConfig, Dict[str, Any], str],
        emitter: Optional[EventEmitter] = None,
    ) -> "MemoryChain":
        """
        Build a chain with a LiteLLMClient-backed LLMChain and the configured store.

        Args:
            config: MemChainConfig, raw mapping, or path to a YAML file

        With retrieval.embedding_model set, the chain starts with an empty
        InMemoryVectorStore embedding through litellm. A postgres store
        still needs `await chain.initialize()` before use.
        """
        from langchain_core.vectorstores import InMemoryVectorStore

        from .checkpoint.postgres_storage import PostgreSQLStorage
        from .generation.llm_chain import LLMChain
        from .llm.base import LLMConfig
        from .llm.litellm_client import LiteLLMClient
        from .retrieval.embeddings import LiteLLMEmbeddings

        if isinstance(config, str):
            config = load_config(config)
        elif not isinstance(config, MemChainConfig):
            config = MemChainConfig.from_dict(config)

        llm = config.llm
        client = LiteLLMClient(
            LLMConfig(
                api_key=llm.api_key,
                model=llm.model,
                base_url=llm.base_url,
                temperature=llm.temperature,
                max_tokens=llm.max_tokens,
                timeout=llm.timeout,
                extra=dict(llm.extra),
            ),
            provider_name=llm.provider,
        )
        generator = LLMChain(
            client,
            system_prompt=config.system_prompt,
            retrieval_k=config.retrieval.k,
        )

        retrieval = config.retrieval
        if retrieval.embedding_model:
            embeddings = LiteLLMEmbeddings(
                model=retrieval.embedding_model,
                provider_name=retrieval.embedding_provider or llm.provider,
                api_key=llm.api_key if not retrieval.embedding_provider else None,
                base_url=llm.base_url if not retrieval.embedding_provider else None,
            )
            generator.set_context(InMemoryVectorStore(embeddings))

        if config.storage.backend == "postgres":
            store: CheckpointStorage = PostgreSQLStorage(dsn=config.storage.dsn)
        else:
            store = MemoryStorage(max_versions_per_thread=config.storage.max_versions_per_thread)

        return cls(generator=generator, store=store, config=config, emitter=emitter)

    async def initialize(self) -> None:
        """Initialize the store if it needs it (PostgreSQLStorage)"""
        initialize = getattr(self.store, "initialize", None)
        if initialize is not None:
            await initialize()

    async def close(self) -> None:
        """Persist unfinished streams, then release the store and the LLM client"""
        for thread_id in list(self._open_streams):
            await self._settle(thread_id)
        for resource in (self.store, getattr(self.generator, "client", None)):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> "MemoryChain":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # -- Turns -----------------------------------------------------------------

    async def history(self, thread_id: str) -> HistorySnapshot:
        """Current messages and transcript of a thread (empty for a new one)"""
        await self._settle(thread_id)
        return await self.reconstructor.load(thread_id)

    async def invoke(self, thread_id: str, input: str, **variables: Any) -> InvokeResult:
        """
        Run a one-shot turn.

        The collaborator's result is returned unchanged; its text is stored
        as the assistant message. A failed turn stores nothing.

        Raises:
            GenerationError: if the collaborator fails
            StoreError: if loading history or persisting the turn fails
        """
        await self._settle(thread_id)
        snapshot = await self.reconstructor.load(thread_id)
        gen_input = GenerationInput(
            message=input, transcript=snapshot.transcript, variables=variables
        )

        try:
            result = await self.generator.invoke(gen_input)
        except MemChainError:
            logger.warning(f"Generation failed for thread {thread_id}, turn not persisted")
            raise
        except Exception as e:
            logger.warning(f"Generation failed for thread {thread_id}, turn not persisted")
            raise GenerationError(f"Generation failed for thread {thread_id}: {e}") from e

        await self.guarantor.commit(thread_id, snapshot.checkpoint, input, response_text(result))
        return result

    def stream(
        self,
        thread_id: str,
        input: str,
        stream_delay: Optional[float] = None,
        **variables: Any,
    ) -> TurnStream:
        """
        Start a streamed turn.

        Nothing runs until the first fragment is requested. Fragments are
        forwarded in the order produced; the accumulated text is persisted
        when the stream ends, fails, or is closed early.

        Args:
            thread_id: Conversation thread
            input: User message
            stream_delay: Pacing between fragments in seconds (config default)
            **variables: Extra variables handed to the collaborator

        Returns:
            TurnStream; `stream.text` is the full response once it is exhausted
        """
        scope = TurnScope(thread_id, input, self.guarantor, emitter=self.emitter)
        turn = TurnStream(scope, self._drive_turn(scope, stream_delay, variables))
        self._open_streams.setdefault(thread_id, []).append(turn)
        return turn

    async def _settle(self, thread_id: str, current: Optional[TurnScope] = None) -> None:
        """Close streams left mid-way on a thread so their turns are stored first"""
        pending = self._open_streams.get(thread_id)
        if not pending:
            return

        for turn in list(pending):
            if turn.scope is current:
                continue
            if turn.state == TurnState.STREAMING and not turn.running:
                logger.info(f"Closing unfinished stream on thread {thread_id} before the next turn")
                pending.remove(turn)
                await turn.aclose()
            elif turn.state not in (TurnState.INIT, TurnState.STREAMING):
                pending.remove(turn)

        if not pending:
            del self._open_streams[thread_id]

    async def _drive_turn(
        self,
        scope: TurnScope,
        stream_delay: Optional[float],
        variables: Dict[str, Any],
    ) -> AsyncGenerator[str, None]:
        await self._settle(scope.thread_id, current=scope)
        snapshot = await self.reconstructor.load(scope.thread_id)
        scope.prior = snapshot.checkpoint
        gen_input = GenerationInput(
            message=scope.user_input, transcript=snapshot.transcript, variables=variables
        )

        try:
            fragments = self.generator.stream(gen_input)
        except Exception as e:
            raise GenerationError(f"Generation failed for thread {scope.thread_id}: {e}") from e

        async with aclosing(self.coordinator.run(scope, fragments, stream_delay)) as run:
            async for fragment in run:
                yield fragment

    # -- Retrieval context -----------------------------------------------------

    def _retrieval_target(self, operation: str):
        if not hasattr(self.generator, operation):
            raise ConfigurationError(
                f"{type(self.generator).__name__} does not support retrieval context"
            )
        return getattr(self.generator, operation)

    async def add_context(self, data: Iterable[Any]) -> None:
        """
        Add documents to the collaborator's retrieval store.

        Raises:
            ConfigurationError: no store set, or the collaborator has no retrieval
        """
        await self._retrieval_target("add_context")(data)

    def set_context(self, store: VectorStore) -> None:
        """Give the collaborator a retrieval store"""
        self._retrieval_target("set_context")(store)

    def clear_context(self) -> None:
        """Drop the collaborator's retrieval store"""
        self._retrieval_target("clear_context")()
