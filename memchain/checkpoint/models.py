"""
memchain Checkpoint Models - Data structures for conversation checkpoints

This module defines:
- Role / Message: an immutable, explicitly tagged conversation message
- CheckpointMetadata: provenance record written alongside each version
- Checkpoint: fixed-shape, versioned snapshot of one thread
- CheckpointSummary: lightweight record for listing versions
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple
import json
import time


class Role(str, Enum):
    """Who authored a message"""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def content_to_text(content: Any) -> str:
    """Render message content as text; non-strings get a canonical JSON form."""
    if isinstance(content, str):
        return content
    return json.dumps(content, sort_keys=True, ensure_ascii=False, default=str)


@dataclass(frozen=True)
class Message:
    """
    A single conversation message.

    The role is fixed at construction and never inferred from the content.
    """
    role: Role
    content: Any

    @classmethod
    def user(cls, content: Any) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: Any) -> "Message":
        return cls(Role.ASSISTANT, content)

    @classmethod
    def system(cls, content: Any) -> "Message":
        return cls(Role.SYSTEM, content)

    @property
    def text(self) -> str:
        return content_to_text(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(role=Role(data["role"]), content=data["content"])


@dataclass
class CheckpointMetadata:
    """Provenance for a checkpoint version. Used for audit, never for control flow."""
    step: int
    source: str = "input"
    parents: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "step": self.step,
            "parents": dict(self.parents),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckpointMetadata":
        return cls(
            step=data["step"],
            source=data.get("source", "input"),
            parents=data.get("parents", {}),
        )


@dataclass(frozen=True)
class Checkpoint:
    """
    Durable snapshot of one conversation thread.

    Invariants:
    - messages only ever grow by appending (one user + one assistant per turn)
    - version is incremented by exactly 1 per persisted turn
    - a new Checkpoint is built for every turn; existing ones are never mutated
    """
    # Identity
    thread_id: str
    version: int
    id: str

    # State snapshot
    messages: Tuple[Message, ...] = ()

    # Metadata
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[CheckpointMetadata] = None

    def __post_init__(self):
        if self.version < 0:
            raise ValueError(f"Checkpoint version must be >= 0, got {self.version}")
        # Accept any iterable of messages but store a tuple
        if not isinstance(self.messages, tuple):
            object.__setattr__(self, "messages", tuple(self.messages))

    @classmethod
    def generate_id(cls, thread_id: str) -> str:
        """Mint a checkpoint record ID from the thread ID and the current time"""
        return f"{thread_id}-{int(time.time() * 1000)}"

    @property
    def turns(self) -> int:
        """Number of complete user/assistant exchanges"""
        return len(self.messages) // 2

    def with_turn(
        self,
        messages: Iterable[Message],
        metadata: CheckpointMetadata,
    ) -> "Checkpoint":
        """Return the next version with the given messages appended"""
        return Checkpoint(
            thread_id=self.thread_id,
            version=self.version + 1,
            id=self.id,
            messages=self.messages + tuple(messages),
            timestamp=self.timestamp,
            metadata=metadata,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize checkpoint to dictionary"""
        return {
            "thread_id": self.thread_id,
            "version": self.version,
            "id": self.id,
            "messages": [m.to_dict() for m in self.messages],
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Checkpoint":
        """Deserialize checkpoint from dictionary"""
        metadata = data.get("metadata")
        return cls(
            thread_id=data["thread_id"],
            version=data["version"],
            id=data["id"],
            messages=tuple(Message.from_dict(m) for m in data.get("messages", [])),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            metadata=CheckpointMetadata.from_dict(metadata) if metadata else None,
        )

    def to_json(self) -> str:
        """Serialize to JSON string"""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "Checkpoint":
        """Deserialize from JSON string"""
        return cls.from_dict(json.loads(json_str))


@dataclass
class CheckpointSummary:
    """
    Lightweight record for listing the versions of a thread.

    Used for displaying version lists without loading full message history.
    """
    thread_id: str
    version: int
    id: str
    timestamp: datetime
    message_count: int = 0
    last_message_preview: Optional[str] = None  # First 100 chars of last message

    @classmethod
    def from_checkpoint(cls, checkpoint: Checkpoint) -> "CheckpointSummary":
        """Create summary from full checkpoint"""
        preview = None
        if checkpoint.messages:
            text = checkpoint.messages[-1].text
            preview = text[:100] if len(text) > 100 else text

        return cls(
            thread_id=checkpoint.thread_id,
            version=checkpoint.version,
            id=checkpoint.id,
            timestamp=checkpoint.timestamp,
            message_count=len(checkpoint.messages),
            last_message_preview=preview,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "version": self.version,
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "message_count": self.message_count,
            "last_message_preview": self.last_message_preview,
        }
