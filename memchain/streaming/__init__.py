"""
memchain Streaming - Forward fragments of a turn while guaranteeing persistence

Provides:
- TurnState, EventType, TurnEvent
- EventEmitter for observing turns
- TurnScope, StreamCoordinator, TurnStream
- split_words / stream_words for word-by-word replay
"""

from .models import EXIT_STATES, EventType, TurnEvent, TurnState
from .engine import EventEmitter, StreamCoordinator, TurnScope, TurnStream
from .fragments import FRAGMENT_SEPARATOR, split_words, stream_words

__all__ = [
    "TurnState",
    "EXIT_STATES",
    "EventType",
    "TurnEvent",
    "EventEmitter",
    "TurnScope",
    "StreamCoordinator",
    "TurnStream",
    "FRAGMENT_SEPARATOR",
    "split_words",
    "stream_words",
]
