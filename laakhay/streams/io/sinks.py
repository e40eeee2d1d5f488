"""Bounded push sinks.

Architecture:
    A push sink is synchronous and capacity-bounded: a producer may only write
    what currently fits, and learns about freed space (or failures) through
    readiness events delivered to subscribed listeners. Listeners may be
    invoked from the sink's own execution context, which is not necessarily
    the thread running the producer.

    MemoryPipe is an in-memory bound pipe: its write side is a ByteSink, its
    read side an async iterator. It stands in for an OS-level bound stream
    pair and is what the HTTP glue hands to aiohttp as a request body.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable
from typing import Protocol

from ..core.config import DEFAULT_BUFFER_SIZE
from ..core.enums import SinkEvent
from ..core.exceptions import StreamingError

logger = logging.getLogger(__name__)

SinkListener = Callable[[SinkEvent, BaseException | None], None]


class ByteSink(Protocol):
    """Protocol for synchronous, capacity-bounded byte sinks."""

    def writable_capacity(self) -> int:
        """Return how many bytes a write would accept right now."""
        ...

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write up to ``len(data)`` bytes without blocking.

        Returns:
            Number of bytes accepted (negative if the sink failed)
        """
        ...

    def subscribe(self, listener: SinkListener) -> None:
        """Register a readiness listener.

        The listener receives HAS_SPACE_AVAILABLE when capacity frees up and
        ERROR_OCCURRED (with the error) when the sink fails.
        """
        ...

    def close(self) -> None:
        """Close the sink. Called exactly once by the bridge."""
        ...


class MemoryPipe:
    """Bound in-memory byte pipe with a fixed capacity.

    The write side may be driven from any thread; a waiting reader is woken
    on its own event loop. Closing the pipe reports ERROR_OCCURRED to
    listeners so a producer waiting for capacity learns no more will come.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._listeners: list[SinkListener] = []
        self._data_ready = asyncio.Event()
        self._reader_loop: asyncio.AbstractEventLoop | None = None
        self._closed = False
        self._error: BaseException | None = None
        self.bytes_written = 0
        self.bytes_read = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def buffered(self) -> int:
        """Bytes written but not read yet."""
        with self._lock:
            return len(self._buffer)

    # Write side (ByteSink)

    def writable_capacity(self) -> int:
        with self._lock:
            if self._closed or self._error is not None:
                return 0
            return self._capacity - len(self._buffer)

    def write(self, data: bytes | bytearray | memoryview) -> int:
        with self._lock:
            if self._error is not None:
                return -1
            if self._closed:
                raise StreamingError("write to a closed pipe", bytes_written=self.bytes_written)
            size = min(len(data), self._capacity - len(self._buffer))
            if size <= 0:
                return 0
            self._buffer += memoryview(data)[:size]
            self.bytes_written += size
        self._wake_reader()
        return size

    def subscribe(self, listener: SinkListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.debug(f"Memory pipe closed after {self.bytes_written} bytes")
        self._notify(
            SinkEvent.ERROR_OCCURRED,
            StreamingError("memory pipe closed", bytes_written=self.bytes_written),
        )
        self._wake_reader()

    def fail(self, error: BaseException | None = None) -> None:
        """Put the pipe into a failed state and notify listeners.

        Args:
            error: Cause reported to listeners and readers
        """
        with self._lock:
            if self._error is not None:
                return
            self._error = error or StreamingError("memory pipe failed", bytes_written=self.bytes_written)
        logger.warning(f"Memory pipe failed: {self._error}")
        self._notify(SinkEvent.ERROR_OCCURRED, self._error)
        self._wake_reader()

    # Read side

    async def read(self, max_bytes: int = -1) -> bytes:
        """Read buffered bytes, waiting until some are available.

        Args:
            max_bytes: Upper bound on returned bytes (-1 = everything buffered)

        Returns:
            Bytes read, or b"" once the pipe is closed and drained

        Raises:
            StreamingError: If the pipe failed
        """
        while True:
            with self._lock:
                if self._error is not None:
                    raise StreamingError(
                        f"memory pipe failed: {self._error}", bytes_written=self.bytes_written
                    ) from self._error
                if self._buffer:
                    size = len(self._buffer) if max_bytes < 0 else min(max_bytes, len(self._buffer))
                    data = bytes(self._buffer[:size])
                    del self._buffer[:size]
                    self.bytes_read += size
                    break
                if self._closed:
                    return b""
                self._data_ready.clear()
                self._reader_loop = asyncio.get_running_loop()
            await self._data_ready.wait()

        self._notify(SinkEvent.HAS_SPACE_AVAILABLE, None)
        return data

    async def iter_chunks(self, max_bytes: int = -1) -> AsyncIterator[bytes]:
        """Yield chunks until the pipe is closed and drained."""
        while True:
            data = await self.read(max_bytes)
            if not data:
                return
            yield data

    def _wake_reader(self) -> None:
        with self._lock:
            loop = self._reader_loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is None or loop is running:
            self._data_ready.set()
        else:
            loop.call_soon_threadsafe(self._data_ready.set)

    def _notify(self, event: SinkEvent, error: BaseException | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(event, error)
