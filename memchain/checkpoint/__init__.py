"""
memchain Checkpoint System - Versioned, per-thread conversation snapshots

Each persisted turn produces a new checkpoint version for its thread:
- Append-only: messages are only ever appended, never edited or removed
- Versioned: version N means N turns have been committed
- Isolated: threads never share state

Storage Backends:
- Memory (testing/development)
- PostgreSQL (production)

Example usage:
    from memchain.checkpoint import MemoryStorage

    storage = MemoryStorage()
    checkpoint = await storage.get("thread-1")
    versions = await storage.list_versions("thread-1")
"""

from .models import (
    Role,
    Message,
    Checkpoint,
    CheckpointMetadata,
    CheckpointSummary,
)

from .storage import (
    CheckpointStorage,
    MemoryStorage,
)

from .postgres_storage import PostgreSQLStorage

__all__ = [
    # Models
    "Role",
    "Message",
    "Checkpoint",
    "CheckpointMetadata",
    "CheckpointSummary",
    # Storage
    "CheckpointStorage",
    "MemoryStorage",
    "PostgreSQLStorage",
]
