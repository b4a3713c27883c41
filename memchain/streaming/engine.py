"""
memchain Streaming Engine - Drive a streamed turn and guarantee its persistence

This module provides:
- EventEmitter: Callback-based event distribution
- TurnScope: async context manager whose exit commits the turn exactly once
- StreamCoordinator: forwards fragments in order while accumulating them
- TurnStream: the async iterator handed to callers
"""

import asyncio
import logging
from typing import (
    Any, AsyncGenerator, AsyncIterable, AsyncIterator, Awaitable, Callable,
    Dict, List, Optional,
)

from ..checkpoint.models import Checkpoint
from ..errors import GenerationError, StoreError
from ..persistence import PersistenceGuarantor
from .models import EventType, TurnEvent, TurnState

logger = logging.getLogger(__name__)


# Type for event handlers
EventHandler = Callable[[TurnEvent], Awaitable[None]]


class EventEmitter:
    """
    Callback-based event distribution.

    Allows registering handlers for specific event types
    and emitting events to all registered handlers.
    """

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Register a handler for a specific event type"""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def on_any(self, handler: EventHandler) -> None:
        """Register a handler for all events"""
        self._global_handlers.append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> bool:
        """Unregister a handler for a specific event type"""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                return True
            except ValueError:
                pass
        return False

    async def emit(self, event: TurnEvent) -> None:
        """Emit an event to all registered handlers. Handler errors never reach the turn."""
        for handler in self._handlers.get(event.type, []) + self._global_handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.warning(
                    f"Event handler error for {event.type}: {e}",
                    exc_info=True
                )

    def clear(self) -> None:
        """Remove all handlers"""
        self._handlers.clear()
        self._global_handlers.clear()


class TurnScope:
    """
    Scoped acquisition of one turn.

    Entering the scope starts streaming. Leaving it, by any path, classifies
    the exit and hands the accumulated text to the persistence guarantor
    exactly once:

    - normal exit                         -> COMPLETE
    - GeneratorExit / asyncio.CancelledError -> ABANDONED
    - any other exception                 -> FAILED

    The original exception is re-raised after the turn is PERSISTED. A store
    failure during the commit replaces it with StoreError, except for a
    cancellation: that is logged, kept on `store_error`, and the
    CancelledError propagates.
    """

    def __init__(
        self,
        thread_id: str,
        user_input: str,
        guarantor: PersistenceGuarantor,
        prior: Optional[Checkpoint] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.thread_id = thread_id
        self.user_input = user_input
        self.prior = prior
        self.guarantor = guarantor
        self.emitter = emitter

        self.state = TurnState.INIT
        self.exit_state: Optional[TurnState] = None
        self.checkpoint: Optional[Checkpoint] = None
        self.store_error: Optional[StoreError] = None
        self._fragments: List[str] = []
        self._sequence = 0
        self._committed = False

    @property
    def text(self) -> str:
        """Everything accumulated so far"""
        return "".join(self._fragments)

    @property
    def fragment_count(self) -> int:
        return len(self._fragments)

    async def accumulate(self, fragment: str) -> None:
        """Record a fragment that is about to be forwarded"""
        self._fragments.append(fragment)
        await self._emit(EventType.MESSAGE_CHUNK, {"chunk": fragment})

    async def __aenter__(self) -> "TurnScope":
        self._transition(TurnState.STREAMING)
        await self._emit(EventType.TURN_START, {"user_input": self.user_input})
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            exit_state = TurnState.COMPLETE
        elif issubclass(exc_type, (GeneratorExit, asyncio.CancelledError)):
            exit_state = TurnState.ABANDONED
        else:
            exit_state = TurnState.FAILED
        self.exit_state = exit_state
        self._transition(exit_state)

        if exit_state == TurnState.FAILED:
            await self._emit(
                EventType.ERROR,
                {"error": str(exc_val), "error_type": exc_type.__name__},
            )

        try:
            await self._commit()
        except StoreError as store_error:
            self.store_error = store_error
            await self._emit(
                EventType.ERROR,
                {"error": str(store_error), "error_type": "StoreError"},
            )
            if isinstance(exc_val, asyncio.CancelledError):
                logger.error(
                    f"Cancelled turn on thread {self.thread_id} was not persisted: {store_error}"
                )
                return False
            if exc_val is not None and not isinstance(exc_val, GeneratorExit):
                raise store_error from exc_val
            raise

        await self._emit(
            EventType.TURN_END,
            {
                "exit_state": exit_state.value,
                "fragments": self.fragment_count,
                "version": self.checkpoint.version if self.checkpoint else None,
            },
        )
        # Never suppress the original exception
        return False

    async def _commit(self) -> None:
        if self._committed:
            return
        self._committed = True
        try:
            self.checkpoint = await self.guarantor.commit(
                self.thread_id, self.prior, self.user_input, self.text
            )
        finally:
            self._transition(TurnState.PERSISTED)

        if self.checkpoint is not None:
            await self._emit(
                EventType.CHECKPOINT_SAVED,
                {"version": self.checkpoint.version, "checkpoint_id": self.checkpoint.id},
            )

    def _transition(self, state: TurnState) -> None:
        logger.debug(f"Turn on thread {self.thread_id}: {self.state.value} -> {state.value}")
        self.state = state

    async def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self.emitter is None:
            return
        event = TurnEvent(
            type=event_type,
            data=data,
            thread_id=self.thread_id,
            sequence=self._sequence,
        )
        self._sequence += 1
        await self.emitter.emit(event)


class StreamCoordinator:
    """
    Drives the fragment sequence of one turn.

    Fragments are pulled one at a time, accumulated, and forwarded to the
    caller immediately in the order produced. An optional pacing delay is
    inserted between fragments; persistence never depends on it.

    Example usage:
        coordinator = StreamCoordinator(PersistenceGuarantor(store))
        scope = TurnScope("t1", "Hi", coordinator.guarantor, prior=None)
        async for fragment in coordinator.run(scope, collaborator.stream(gen_input)):
            print(fragment, end="")
    """

    def __init__(
        self,
        guarantor: PersistenceGuarantor,
        stream_delay: float = 0.0,
    ):
        self.guarantor = guarantor
        self.stream_delay = stream_delay

    async def run(
        self,
        scope: TurnScope,
        fragments: AsyncIterable[str],
        stream_delay: Optional[float] = None,
    ) -> AsyncGenerator[str, None]:
        """
        Forward fragments while accumulating them inside the turn scope.

        Args:
            scope: Turn scope to accumulate into and commit on exit
            fragments: Finite, non-restartable fragment source
            stream_delay: Override for the pacing delay in seconds

        Yields:
            Fragments in the exact order the source produced them

        Raises:
            GenerationError: if the fragment source fails (after persisting)
            StoreError: if the commit fails
        """
        delay = self.stream_delay if stream_delay is None else stream_delay

        async with scope:
            iterator = None
            try:
                iterator = fragments.__aiter__()
                while True:
                    fragment = await self._next_fragment(iterator, scope.thread_id)
                    if fragment is None:
                        break
                    await scope.accumulate(fragment)
                    yield fragment
                    if delay > 0:
                        await asyncio.sleep(delay)
            finally:
                if iterator is not None:
                    await self._close_source(iterator)

    @staticmethod
    async def _next_fragment(iterator: AsyncIterator[str], thread_id: str) -> Optional[str]:
        """Pull the next fragment; None means the source is exhausted."""
        try:
            fragment = await iterator.__anext__()
        except StopAsyncIteration:
            return None
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Generation failed for thread {thread_id}: {e}") from e

        if not isinstance(fragment, str):
            raise GenerationError(
                f"Generation produced a {type(fragment).__name__} fragment, expected str"
            )
        return fragment

    @staticmethod
    async def _close_source(iterator: AsyncIterator[str]) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.warning(f"Failed to close fragment source: {e}", exc_info=True)


class TurnStream:
    """
    Lazy, finite, non-restartable sequence of fragments for one turn.

    Iterate it with `async for`. Use it as an async context manager so that
    stopping early closes the turn (and persists the partial text) right away.
    A stream left open is closed by its MemoryChain before the next turn on
    the same thread:

        async with chain.stream(thread_id="t1", input="Hi") as stream:
            async for fragment in stream:
                print(fragment, end="")
        print(stream.text)

    Attributes:
        scope: The underlying TurnScope (state, accumulated text, checkpoint)
    """

    def __init__(self, scope: TurnScope, fragments: AsyncGenerator[str, None]):
        self.scope = scope
        self._fragments = fragments

    @property
    def thread_id(self) -> str:
        return self.scope.thread_id

    @property
    def state(self) -> TurnState:
        return self.scope.state

    @property
    def text(self) -> str:
        """Text forwarded so far; the full response once the stream has finished"""
        return self.scope.text

    @property
    def checkpoint(self) -> Optional[Checkpoint]:
        """Checkpoint committed for this turn, or None (empty or unfinished turn)"""
        return self.scope.checkpoint

    def __aiter__(self) -> "TurnStream":
        return self

    @property
    def running(self) -> bool:
        """True while a fragment is being produced"""
        return bool(getattr(self._fragments, "ag_running", False))

    async def __anext__(self) -> str:
        return await self._fragments.__anext__()

    async def aclose(self) -> None:
        """Stop the turn early. The partial text is persisted before this returns."""
        await self._fragments.aclose()

    async def collect(self) -> str:
        """Consume the remaining fragments and return the full response text"""
        async for _ in self:
            pass
        return self.text

    async def __aenter__(self) -> "TurnStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
