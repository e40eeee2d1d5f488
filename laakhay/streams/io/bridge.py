"""Pull/push backpressure bridge.

The bridge drives an asynchronous pull-based byte source into a synchronous,
capacity-bounded push sink (see ``sinks.ByteSink``).

Architecture:
    The producing task writes while the sink has capacity and suspends on a
    WaiterSlot when it has none. Readiness events from the sink arrive on the
    sink's own execution context (possibly another thread) and resume the
    producer through the slot. The slot is the only state shared between the
    two contexts and is guarded by a lock.

    WaiterSlot is an explicit state machine (see ``WaiterState``):
    - a capacity event with nobody waiting is remembered (CAPACITY_AVAILABLE)
      so a producer about to suspend does not miss it
    - an error event resumes the waiter with StreamingError, or is stored for
      the next wait when nobody is waiting
    - closing the slot resumes any waiter with StreamCancelledError, so no
      suspended producer is ever abandoned
    - a second concurrent waiter is a ProtocolViolationError

Ordering:
    Bytes reach the sink in exactly the order they were pulled from the source.
    The sink is closed exactly once on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterable
from typing import Any

from ..core.config import DEFAULT_BUFFER_SIZE
from ..core.enums import SinkEvent, WaiterState
from ..core.exceptions import ProtocolViolationError, StreamCancelledError, StreamingError
from .sinks import ByteSink

logger = logging.getLogger(__name__)


def _settle(waiter: asyncio.Future[None], error: BaseException | None) -> None:
    # The waiting task may have been cancelled in the meantime
    if waiter.done():
        return
    if error is None:
        waiter.set_result(None)
    else:
        waiter.set_exception(error)


class WaiterSlot:
    """Single-slot handoff between one producer and sink readiness events.

    ``wait()`` is called by the producing task; ``notify_capacity()``,
    ``notify_error()`` and ``close()`` may be called from any thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = WaiterState.IDLE
        self._waiter: asyncio.Future[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._error: BaseException | None = None

    @property
    def state(self) -> WaiterState:
        with self._lock:
            return self._state

    @property
    def error(self) -> BaseException | None:
        """Error reported by the sink, if any."""
        with self._lock:
            return self._error

    def raise_if_unusable(self) -> None:
        """Raise if the slot is closed or the sink reported an error.

        Raises:
            StreamCancelledError: If the slot was closed
            StreamingError: If the sink reported an error
        """
        with self._lock:
            if self._state is WaiterState.CLOSED:
                raise StreamCancelledError("stream was closed")
            if self._error is not None:
                raise self._error

    async def wait(self) -> None:
        """Suspend until the sink reports capacity.

        Returns immediately if a capacity event arrived since the last wait.

        Raises:
            StreamingError: If the sink reported an error
            StreamCancelledError: If the slot is or gets closed
            ProtocolViolationError: If another waiter is already registered
            asyncio.CancelledError: If the waiting task is cancelled
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._state is WaiterState.CLOSED:
                raise StreamCancelledError("stream was closed")
            if self._error is not None:
                raise self._error
            if self._state is WaiterState.WAITING:
                raise ProtocolViolationError("a producer is already waiting for sink capacity")
            if self._state is WaiterState.CAPACITY_AVAILABLE:
                self._state = WaiterState.IDLE
                return
            waiter: asyncio.Future[None] = loop.create_future()
            self._waiter = waiter
            self._loop = loop
            self._state = WaiterState.WAITING

        try:
            await waiter
        except asyncio.CancelledError:
            with self._lock:
                if self._waiter is waiter:
                    self._waiter = None
                    self._loop = None
                    self._state = WaiterState.IDLE
            raise

    def notify_capacity(self) -> None:
        """Record a capacity event, resuming the waiter if there is one."""
        with self._lock:
            if self._state is WaiterState.IDLE:
                self._state = WaiterState.CAPACITY_AVAILABLE
                return
            if self._state is not WaiterState.WAITING:
                return
            waiter, loop = self._take_waiter()
            self._state = WaiterState.IDLE
        loop.call_soon_threadsafe(_settle, waiter, None)

    def notify_error(self, error: BaseException) -> None:
        """Record a sink error, failing the waiter if there is one."""
        with self._lock:
            if self._state is WaiterState.CLOSED or self._error is not None:
                return
            self._error = error
            if self._state is not WaiterState.WAITING:
                return
            waiter, loop = self._take_waiter()
            self._state = WaiterState.IDLE
        loop.call_soon_threadsafe(_settle, waiter, error)

    def close(self) -> None:
        """Move to CLOSED, resuming any waiter with StreamCancelledError."""
        with self._lock:
            if self._state is WaiterState.CLOSED:
                return
            waiting = self._state is WaiterState.WAITING
            if waiting:
                waiter, loop = self._take_waiter()
            self._state = WaiterState.CLOSED
        if waiting:
            loop.call_soon_threadsafe(
                _settle, waiter, StreamCancelledError("stream closed while waiting for sink capacity")
            )

    def _take_waiter(self) -> tuple[asyncio.Future[None], asyncio.AbstractEventLoop]:
        # Caller holds the lock and has checked the WAITING state
        waiter, loop = self._waiter, self._loop
        assert waiter is not None and loop is not None
        self._waiter = None
        self._loop = None
        return waiter, loop


class BackpressureBridge:
    """Streams an async byte source into a bounded push sink.

    Example:
        >>> pipe = MemoryPipe(capacity=16384)
        >>> bridge = BackpressureBridge(body_chunks(), pipe)
        >>> written = await bridge.run()

    The bridge is single use. ``run()`` closes the sink exactly once whether
    it completes, fails with StreamingError, is discarded (StreamCancelledError)
    or its task is cancelled (asyncio.CancelledError).
    """

    def __init__(
        self,
        source: AsyncIterable[bytes | bytearray | memoryview],
        sink: ByteSink,
        *,
        max_buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """Initialize bridge and subscribe to sink readiness events.

        Args:
            source: Async byte source to drain
            sink: Bounded push sink to drive
            max_buffer_size: Maximum bytes handed to a single sink write

        Raises:
            ValueError: If max_buffer_size is not positive
        """
        if max_buffer_size <= 0:
            raise ValueError(f"max_buffer_size must be positive, got {max_buffer_size}")
        self._source = source
        self._sink = sink
        self._max_buffer_size = max_buffer_size
        self._slot = WaiterSlot()
        self._close_lock = threading.Lock()
        self._sink_closed = False
        self._started = False
        self._bytes_written = 0
        sink.subscribe(self._on_sink_event)

    @property
    def bytes_written(self) -> int:
        """Total bytes accepted by the sink so far."""
        return self._bytes_written

    @property
    def is_waiting(self) -> bool:
        """Whether the producer is suspended waiting for sink capacity."""
        return self._slot.state is WaiterState.WAITING

    @property
    def closed(self) -> bool:
        """Whether the sink has been closed."""
        return self._sink_closed

    async def run(self) -> int:
        """Drain the source into the sink, then close the sink.

        Returns:
            Total bytes written

        Raises:
            StreamingError: If the sink reported an error or rejected a write
            StreamCancelledError: If the bridge was discarded mid-stream
            ProtocolViolationError: If run() is called twice
            asyncio.CancelledError: If the running task is cancelled
            Exception: Whatever the source raised
        """
        if self._started:
            raise ProtocolViolationError("bridge has already run")
        self._started = True

        iterator = aiter(self._source)
        try:
            while True:
                try:
                    chunk = await anext(iterator)
                except StopAsyncIteration:
                    break
                await self._write_chunk(chunk)
        except asyncio.CancelledError:
            logger.debug(f"Bridge cancelled after {self._bytes_written} bytes")
            raise
        except Exception as e:
            logger.warning(f"Bridge failed after {self._bytes_written} bytes: {e}")
            raise
        finally:
            self._teardown()
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        logger.debug(f"Bridge completed, {self._bytes_written} bytes written")
        return self._bytes_written

    def discard(self) -> None:
        """Tear the bridge down, resuming a suspended producer.

        Safe to call from any thread and more than once. A producer waiting
        for capacity fails with StreamCancelledError.
        """
        self._teardown()

    async def _write_chunk(self, chunk: bytes | bytearray | memoryview) -> None:
        view = memoryview(chunk)
        offset = 0
        while offset < len(view):
            self._slot.raise_if_unusable()
            if self._sink.writable_capacity() <= 0:
                await self._slot.wait()
                continue

            size = min(len(view) - offset, self._max_buffer_size)
            written = self._sink.write(view[offset : offset + size])
            if written < 0:
                error = self._slot.error
                raise StreamingError(
                    f"sink rejected write: {error}" if error else "sink rejected write",
                    bytes_written=self._bytes_written,
                ) from error
            if written == 0:
                # Capacity was reported but nothing fit; wait for the next event
                await self._slot.wait()
                continue
            offset += written
            self._bytes_written += written

    def _on_sink_event(self, event: SinkEvent, error: BaseException | None) -> None:
        if event is SinkEvent.HAS_SPACE_AVAILABLE:
            self._slot.notify_capacity()
        elif event is SinkEvent.ERROR_OCCURRED:
            failure = StreamingError(
                f"sink reported an error: {error}" if error else "sink reported an error",
                bytes_written=self._bytes_written,
            )
            failure.__cause__ = error
            self._slot.notify_error(failure)

    def _teardown(self) -> None:
        self._slot.close()
        with self._close_lock:
            if self._sink_closed:
                return
            self._sink_closed = True
        self._sink.close()
        logger.debug(f"Bridge closed sink after {self._bytes_written} bytes")

    async def __aenter__(self) -> BackpressureBridge:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.discard()


async def stream_to_sink(
    source: AsyncIterable[bytes | bytearray | memoryview],
    sink: ByteSink,
    *,
    max_buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    """Drain ``source`` into ``sink`` with backpressure; see BackpressureBridge.

    Returns:
        Total bytes written
    """
    return await BackpressureBridge(source, sink, max_buffer_size=max_buffer_size).run()
