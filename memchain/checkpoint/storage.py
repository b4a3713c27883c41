"""
memchain Checkpoint Storage - Backend storage implementations

This module provides storage backends for checkpoints:
- CheckpointStorage: the interface the core consumes (get / put)
- MemoryStorage: In-memory storage for testing and single-process use
- PostgreSQLStorage: see postgres_storage.py

The core only ever calls get() and put(). The listing and deletion helpers
are retention/debugging tools for operators.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, List, Optional
import copy
import logging

from .models import Checkpoint, CheckpointMetadata, CheckpointSummary

logger = logging.getLogger(__name__)


class CheckpointStorage(ABC):
    """
    Abstract base class for checkpoint storage backends.

    Implementations are keyed by thread ID and must keep versions isolated
    per thread. The read-modify-write cycle performed by the core is NOT
    atomic across this boundary: callers must serialize turns per thread.
    """

    @abstractmethod
    async def get(self, thread_id: str) -> Optional[Checkpoint]:
        """
        Get the latest checkpoint for a thread.

        Args:
            thread_id: Thread to look up

        Returns:
            Latest checkpoint or None if the thread has never been persisted
        """
        pass

    @abstractmethod
    async def put(
        self,
        thread_id: str,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        version_hint: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Persist a new checkpoint version for a thread.

        Args:
            thread_id: Thread to write
            checkpoint: New checkpoint version
            metadata: Provenance record for this version
            version_hint: Auxiliary bookkeeping (e.g. {"messages": 4})
        """
        pass

    @abstractmethod
    async def get_version(self, thread_id: str, version: int) -> Optional[Checkpoint]:
        """Get a specific version of a thread, or None"""
        pass

    @abstractmethod
    async def list_versions(
        self,
        thread_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CheckpointSummary]:
        """List stored versions for a thread, newest first"""
        pass

    @abstractmethod
    async def list_threads(self) -> List[str]:
        """List all thread IDs with at least one checkpoint"""
        pass

    @abstractmethod
    async def delete_thread(self, thread_id: str) -> int:
        """
        Delete every version of a thread.

        Returns:
            Number of versions deleted
        """
        pass


class MemoryStorage(CheckpointStorage):
    """
    In-memory checkpoint storage for testing and development.

    Checkpoints are deep-copied on the way in and out so callers can never
    alias stored state. All data is lost when the process exits.
    """

    def __init__(self, max_versions_per_thread: int = 1000):
        self._versions: Dict[str, List[Checkpoint]] = defaultdict(list)
        self._metadata: Dict[str, Dict[int, CheckpointMetadata]] = defaultdict(dict)
        self._version_hints: Dict[str, Dict[str, Any]] = {}
        self._max_per_thread = max_versions_per_thread

    async def get(self, thread_id: str) -> Optional[Checkpoint]:
        versions = self._versions.get(thread_id)
        if not versions:
            return None
        return copy.deepcopy(versions[-1])

    async def put(
        self,
        thread_id: str,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        version_hint: Optional[Dict[str, Any]] = None,
    ) -> None:
        versions = self._versions[thread_id]
        versions.append(copy.deepcopy(checkpoint))
        self._metadata[thread_id][checkpoint.version] = copy.deepcopy(metadata)
        if version_hint is not None:
            self._version_hints[thread_id] = dict(version_hint)

        # Enforce max versions per thread
        if len(versions) > self._max_per_thread:
            oldest = versions.pop(0)
            self._metadata[thread_id].pop(oldest.version, None)

        logger.debug(f"Stored checkpoint v{checkpoint.version} for thread {thread_id}")

    async def get_version(self, thread_id: str, version: int) -> Optional[Checkpoint]:
        for checkpoint in self._versions.get(thread_id, []):
            if checkpoint.version == version:
                return copy.deepcopy(checkpoint)
        return None

    async def list_versions(
        self,
        thread_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CheckpointSummary]:
        versions = sorted(
            self._versions.get(thread_id, []),
            key=lambda c: c.version,
            reverse=True,
        )
        return [
            CheckpointSummary.from_checkpoint(c)
            for c in versions[offset:offset + limit]
        ]

    async def list_threads(self) -> List[str]:
        return [thread_id for thread_id, versions in self._versions.items() if versions]

    async def delete_thread(self, thread_id: str) -> int:
        versions = self._versions.pop(thread_id, [])
        self._metadata.pop(thread_id, None)
        self._version_hints.pop(thread_id, None)
        return len(versions)

    def get_metadata(self, thread_id: str, version: int) -> Optional[CheckpointMetadata]:
        """Get the provenance record written with a version"""
        return self._metadata.get(thread_id, {}).get(version)

    def get_version_hint(self, thread_id: str) -> Optional[Dict[str, Any]]:
        """Get the version hint passed with the latest put"""
        return self._version_hints.get(thread_id)

    def clear_all(self) -> None:
        """Clear all stored checkpoints"""
        self._versions.clear()
        self._metadata.clear()
        self._version_hints.clear()
