"""
memchain History - Rebuild conversation state from a stored checkpoint.

Loading is a pure read-and-format step: one store get, no writes, so any
number of readers may call it concurrently.
"""

import logging
from typing import Iterable, NamedTuple, Optional, Tuple

from .checkpoint.models import Checkpoint, Message, Role
from .checkpoint.storage import CheckpointStorage
from .errors import StoreError

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    Role.USER: "User",
    Role.ASSISTANT: "Assistant",
}
DEFAULT_ROLE_LABEL = "System"


class HistorySnapshot(NamedTuple):
    """Messages and transcript of a thread, plus the checkpoint they came from"""
    messages: Tuple[Message, ...]
    transcript: str
    checkpoint: Optional[Checkpoint]


def render_transcript(messages: Iterable[Message]) -> str:
    """
    Render messages as "<Label>: <content>" blocks separated by a blank line.

    user -> "User", assistant -> "Assistant", anything else -> "System".
    """
    return "\n\n".join(
        f"{ROLE_LABELS.get(m.role, DEFAULT_ROLE_LABEL)}: {m.text}"
        for m in messages
    )


class HistoryReconstructor:
    """Loads a thread's latest checkpoint and renders its transcript."""

    def __init__(self, store: CheckpointStorage):
        self.store = store

    async def load(self, thread_id: str) -> HistorySnapshot:
        """
        Load the history of a thread.

        A thread with no checkpoint yields an empty history, not an error.

        Raises:
            StoreError: if the store read fails
        """
        try:
            checkpoint = await self.store.get(thread_id)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to load checkpoint for thread {thread_id}: {e}",
                thread_id=thread_id,
                operation="get",
            ) from e

        if checkpoint is None:
            logger.debug(f"No checkpoint for thread {thread_id}, starting fresh")
            return HistorySnapshot(messages=(), transcript="", checkpoint=None)

        messages = tuple(checkpoint.messages)
        return HistorySnapshot(
            messages=messages,
            transcript=render_transcript(messages),
            checkpoint=checkpoint,
        )
