"""Tests for the input line reader."""

from __future__ import annotations

import io
import os

import pytest

from tyeff.context import LineReader
from tyeff.errors import EndOfInputError, InputTimeoutError


@pytest.fixture
def pipe():
    read_fd, write_fd = os.pipe()
    reader = LineReader(os.fdopen(read_fd, "r", encoding="utf-8"), owned=True)
    state = {"write_fd": write_fd}
    yield reader, state
    if state["write_fd"] is not None:
        os.close(state["write_fd"])
    reader.close()


@pytest.mark.asyncio
async def test_reads_text_stream_lines() -> None:
    reader = LineReader(io.StringIO("a\r\nb"))

    assert await reader.readline() == "a"
    assert await reader.readline() == "b"
    with pytest.raises(EndOfInputError):
        await reader.readline()


@pytest.mark.asyncio
async def test_timeout_keeps_the_pending_line(pipe) -> None:
    reader, state = pipe

    with pytest.raises(InputTimeoutError, match="No input within 0.05s"):
        await reader.readline(0.05)
    assert reader.pending

    os.write(state["write_fd"], b"first\nsecond\n")

    assert await reader.readline(5) == "first"
    assert await reader.readline(5) == "second"
    assert not reader.pending


@pytest.mark.asyncio
async def test_end_of_input_after_timeout(pipe) -> None:
    reader, state = pipe

    with pytest.raises(InputTimeoutError):
        await reader.readline(0.05)
    os.write(state["write_fd"], b"tail")
    os.close(state["write_fd"])
    state["write_fd"] = None

    assert await reader.readline(5) == "tail"
    with pytest.raises(EndOfInputError):
        await reader.readline(5)


@pytest.mark.asyncio
async def test_closed_reader_is_at_end_of_input() -> None:
    reader = LineReader(io.StringIO("unread\n"))
    reader.close()

    with pytest.raises(EndOfInputError):
        await reader.readline()
