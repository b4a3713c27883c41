"""
memchain Streaming Models - Data structures for streamed turns

This module defines:
- TurnState: lifecycle of a single streamed turn
- EventType / TurnEvent: observability events emitted while a turn runs
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class TurnState(str, Enum):
    """
    Lifecycle of one turn.

    INIT -> STREAMING -> {COMPLETE, FAILED, ABANDONED} -> PERSISTED
    """
    INIT = "init"               # History loaded, generation input assembled
    STREAMING = "streaming"     # Fragments are being forwarded
    COMPLETE = "complete"       # Fragment sequence finished normally
    FAILED = "failed"           # Fragment sequence raised mid-stream
    ABANDONED = "abandoned"     # Consumer stopped early or the task was cancelled
    PERSISTED = "persisted"     # Accumulated text handed to persistence (terminal)


# Exit states that must be followed by PERSISTED
EXIT_STATES = frozenset({TurnState.COMPLETE, TurnState.FAILED, TurnState.ABANDONED})


class EventType(str, Enum):
    """Types of events emitted during a turn"""
    TURN_START = "turn_start"
    MESSAGE_CHUNK = "message_chunk"
    TURN_END = "turn_end"
    CHECKPOINT_SAVED = "checkpoint_saved"
    ERROR = "error"


@dataclass
class TurnEvent:
    """
    Event emitted by the stream coordinator.

    All events have:
    - type: The type of event
    - data: Event-specific data
    - thread_id: Which thread the turn belongs to
    - sequence: Order within the turn
    """
    type: EventType
    data: Dict[str, Any]
    thread_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    sequence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "type": self.type.value,
            "data": self.data,
            "thread_id": self.thread_id,
            "timestamp": self.timestamp.isoformat(),
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TurnEvent":
        """Create event from dictionary"""
        return cls(
            type=EventType(data["type"]),
            data=data["data"],
            thread_id=data.get("thread_id"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence=data.get("sequence", 0),
        )
