"""Tests for re-chunking streamed output into complete lines."""

from typing import (
    AsyncIterator,
    List,
    Sequence,
)

import pytest

from opdbus.core.errors import StreamInterrupted
from opdbus.streaming.lines import (
    LineBuffer,
    guard_stream,
    iter_lines,
)


async def _chunks(items: Sequence[str | BaseException]) -> AsyncIterator[str]:
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


async def _collect(stream: AsyncIterator[str]) -> List[str]:
    return [line async for line in stream]


@pytest.mark.asyncio
async def test_lines_never_split_across_chunks() -> None:
    chunks = ["10:00:01 start\n10:00:02 inst", "alling\n10:00:03 done\n"]

    lines = await _collect(iter_lines(_chunks(chunks)))

    assert lines == ["10:00:01 start", "10:00:02 installing", "10:00:03 done"]


@pytest.mark.asyncio
async def test_trailing_partial_line_is_flushed() -> None:
    lines = await _collect(iter_lines(_chunks(["a\nb", "c"])))

    assert lines == ["a", "bc"]


def test_buffer_holds_partial_line() -> None:
    buffer = LineBuffer()

    assert buffer.feed("abc") == []
    assert buffer.pending == "abc"
    assert buffer.feed("def\r\nxy") == ["abcdef"]
    assert buffer.flush() == ["xy"]
    assert buffer.flush() == []


def test_blank_remainder_is_not_flushed() -> None:
    buffer = LineBuffer()
    buffer.feed("line\n   ")

    assert buffer.flush() == []


@pytest.mark.asyncio
async def test_guard_stream_ends_with_marker() -> None:
    chunks = ["Initializing...\nCopy", StreamInterrupted("connection reset"), "never"]

    lines = await _collect(iter_lines(guard_stream(_chunks(chunks))))

    assert lines == [
        "Initializing...",
        "Copy",
        "[ERROR] Stream interrupted: connection reset",
    ]


@pytest.mark.asyncio
async def test_guard_stream_wraps_unexpected_errors() -> None:
    chunks = await _collect(guard_stream(_chunks(["ok\n", RuntimeError("boom")])))

    assert chunks == ["ok\n", "\n[ERROR] Stream interrupted: boom"]
