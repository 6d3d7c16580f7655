"""
Line buffering for streamed provider output.

Streaming providers hand out arbitrary text chunks; a chunk may end in the middle of a line.
Consumers only ever see complete lines: partial text is held back until its newline arrives,
and whatever is left when the stream ends is flushed as a final line.  Blank lines are dropped.
"""

import logging
from typing import (
    AsyncIterable,
    AsyncIterator,
    List,
)

from opdbus.core.errors import StreamInterrupted

logger = logging.getLogger(__name__)


class LineBuffer:
    """Accumulates chunks and releases complete lines."""

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: str) -> List[str]:
        """Add *chunk* and return the non-blank lines it completed, in order."""
        self._pending += chunk
        *complete, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in complete if line.strip()]

    def flush(self) -> List[str]:
        """Return the trailing partial line (if it holds anything but whitespace)."""
        rest, self._pending = self._pending, ""
        return [rest.rstrip("\r")] if rest.strip() else []


async def iter_lines(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Re-chunk *chunks* into complete lines."""
    buffer = LineBuffer()
    async for chunk in chunks:
        for line in buffer.feed(chunk):
            yield line
    for line in buffer.flush():
        yield line


async def guard_stream(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """
    Pass *chunks* through, turning a mid-stream failure into a final marker chunk.

    The consumer is never left waiting: after the marker the sequence simply ends.
    """
    try:
        async for chunk in chunks:
            yield chunk
    except StreamInterrupted as exc:
        logger.error("Stream interrupted: %s", exc)
        yield exc.marker()
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Streaming provider failed")
        yield StreamInterrupted(str(exc)).marker()
