"""
memchain Persistence - Commit a finished turn as a new checkpoint version.

The guarantor is the single writer of checkpoints in the core. It is called
exactly once per turn, whatever way the turn ended.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .checkpoint.models import Checkpoint, CheckpointMetadata, Message
from .checkpoint.storage import CheckpointStorage
from .errors import StoreError

logger = logging.getLogger(__name__)

VERSION_HINT_KEY = "messages"


def build_checkpoint(
    thread_id: str,
    prior: Optional[Checkpoint],
    user_input: str,
    response: str,
) -> Checkpoint:
    """
    Build the next checkpoint for a thread from the prior one plus a turn.

    The prior checkpoint is never modified. Without a prior checkpoint the
    result is version 1 with a freshly minted id and timestamp.
    """
    turn = (Message.user(user_input), Message.assistant(response))

    if prior is None:
        return Checkpoint(
            thread_id=thread_id,
            version=1,
            id=Checkpoint.generate_id(thread_id),
            messages=turn,
            timestamp=datetime.now(timezone.utc),
            metadata=CheckpointMetadata(step=1),
        )

    return prior.with_turn(turn, CheckpointMetadata(step=prior.version + 1))


class PersistenceGuarantor:
    """
    Converts (prior checkpoint, user input, response) into a stored version.

    Writes are not retried. A store failure is raised as StoreError so the
    caller knows the turn's text may be lost.
    """

    def __init__(self, store: CheckpointStorage):
        self.store = store

    async def commit(
        self,
        thread_id: str,
        prior: Optional[Checkpoint],
        user_input: str,
        response: str,
    ) -> Optional[Checkpoint]:
        """
        Persist a turn.

        Returns:
            The new checkpoint, or None if the response was empty (no write)

        Raises:
            StoreError: if the store write fails
        """
        if not response:
            logger.debug(f"Empty response for thread {thread_id}, nothing to persist")
            return None

        checkpoint = build_checkpoint(thread_id, prior, user_input, response)
        version_hint = {VERSION_HINT_KEY: len(checkpoint.messages)}

        try:
            await self.store.put(thread_id, checkpoint, checkpoint.metadata, version_hint)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(
                f"Failed to persist v{checkpoint.version} of thread {thread_id}: {e}",
                thread_id=thread_id,
                operation="put",
            ) from e

        logger.info(
            f"Persisted thread {thread_id} v{checkpoint.version} "
            f"({len(checkpoint.messages)} messages)"
        )
        return checkpoint
