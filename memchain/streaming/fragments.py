"""
Word fragments for collaborators that produce their answer in one piece.

A complete response is replayed as words, each carrying a trailing space,
optionally paced so a terminal or UI can render it incrementally.
"""

import asyncio
from typing import AsyncIterator, List

FRAGMENT_SEPARATOR = " "


def split_words(text: str) -> List[str]:
    """Split text into word fragments, each ending with the separator"""
    if not text:
        return []
    return [word + FRAGMENT_SEPARATOR for word in text.split(FRAGMENT_SEPARATOR)]


async def stream_words(text: str, delay: float = 0.0) -> AsyncIterator[str]:
    """
    Yield the words of text one at a time.

    Args:
        text: Complete response text
        delay: Seconds to wait after each fragment (0 disables pacing)
    """
    for fragment in split_words(text):
        yield fragment
        if delay > 0:
            await asyncio.sleep(delay)
