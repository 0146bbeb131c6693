"""
Evaluation context for one tyeff run.

The context owns everything a run mutates: the result store, the reference
store, the custom effect registry and the input line reader. It also carries
the streams, environment and invocation arguments the effects read, so
several contexts can live in one process without sharing global state.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import IO, Any

from tyeff.analysis import Analyzer, DescriptorAnalyzer
from tyeff.config import EvaluatorConfig
from tyeff.descriptors import Descriptor
from tyeff.errors import EndOfInputError, InputTimeoutError
from tyeff.registry import CustomEffectRegistry
from tyeff.storage import ReferenceStore, ResultStore

logger = logging.getLogger(__name__)


class LineReader:
    """Reads one line at a time from a text stream without blocking the loop.

    Each read runs on a daemon thread so a blocked stream never holds up
    interpreter shutdown. A read abandoned by a timeout stays pending and the
    next call picks up its line. Streams backed by a file descriptor are read
    with ``os.read`` so the thread never holds the stream's buffer lock.
    """

    def __init__(self, stream: IO[str] | None = None, *, owned: bool = False) -> None:
        self._stream = stream
        self._owned = owned
        self._closed = False
        self._pending: asyncio.Future[str] | None = None
        self._buffer = b""

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdin

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        return self._pending is not None

    async def readline(self, timeout: float | None = None) -> str:
        if self._closed:
            raise EndOfInputError()
        if self._pending is None:
            self._pending = self._start_read()
        try:
            line = await asyncio.wait_for(asyncio.shield(self._pending), timeout)
        except asyncio.TimeoutError:
            raise InputTimeoutError(timeout) from None
        finally:
            if self._pending is not None and self._pending.done():
                self._pending = None
        if line == "":
            raise EndOfInputError()
        if line.endswith("\r\n"):
            return line[:-2]
        if line.endswith("\n"):
            return line[:-1]
        return line

    def _start_read(self) -> asyncio.Future[str]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def settle(line: str | None, error: BaseException | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(line)

        def worker() -> None:
            try:
                line = self._read_blocking()
            except Exception as exc:
                outcome: tuple[str | None, BaseException | None] = (None, exc)
            else:
                outcome = (line, None)
            try:
                loop.call_soon_threadsafe(settle, *outcome)
            except RuntimeError:
                logger.debug("Input line arrived after the event loop closed")

        threading.Thread(target=worker, name="tyeff-readline", daemon=True).start()
        return future

    def _read_blocking(self) -> str:
        fd = self._fileno()
        if fd is None:
            return self.stream.readline()
        while b"\n" not in self._buffer:
            chunk = os.read(fd, 4096)
            if not chunk:
                break
            self._buffer += chunk
        line, sep, self._buffer = self._buffer.partition(b"\n")
        encoding = getattr(self.stream, "encoding", None) or "utf-8"
        return (line + sep).decode(encoding, errors="replace")

    def _fileno(self) -> int | None:
        try:
            return self.stream.fileno()
        except (AttributeError, OSError, ValueError):
            return None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owned and self._stream is not None:
            self._stream.close()


@dataclass
class EvaluationContext:
    """State and I/O handles threaded through every evaluated effect."""

    analyzer: Analyzer = field(default_factory=DescriptorAnalyzer)
    config: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    argv: Sequence[str] = field(default_factory=list)
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)
    stdout: IO[str] | None = None
    stderr: IO[str] | None = None
    input: LineReader = field(default_factory=LineReader)
    entry_point: Descriptor | None = None
    refs: ReferenceStore = field(default_factory=ReferenceStore)
    registry: CustomEffectRegistry = field(default_factory=CustomEffectRegistry)
    results: ResultStore = field(init=False)
    depth: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.results = ResultStore(self.analyzer)

    @property
    def output_stream(self) -> IO[str]:
        return self.stdout if self.stdout is not None else sys.stdout

    @property
    def diagnostic_stream(self) -> IO[str]:
        return self.stderr if self.stderr is not None else sys.stderr

    def write_output(self, text: str) -> None:
        stream = self.output_stream
        stream.write(text)
        stream.flush()

    def write_diagnostic(self, *parts: Any) -> None:
        stream = self.diagnostic_stream
        print(*parts, file=stream)
        stream.flush()

    def close(self) -> None:
        self.input.close()
        logger.debug(
            "Context closed with %d results and %d refs", len(self.results), len(self.refs)
        )

    def __enter__(self) -> EvaluationContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["EvaluationContext", "LineReader"]
