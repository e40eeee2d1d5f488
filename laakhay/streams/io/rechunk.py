"""Fixed-size rechunking of byte streams.

FixedSizeChunker wraps an arbitrarily fragmented async byte source and emits
buffers of exactly ``chunk_size`` bytes. Only the last buffer may be shorter,
and an empty buffer is never emitted.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

from ..core.config import DEFAULT_CHUNK_SIZE

BytesLike = bytes | bytearray | memoryview


class FixedSizeChunker:
    """Async iterator of fixed-size byte chunks over an upstream byte source.

    The chunker owns a carried-over tail (``pending``) from the last upstream
    chunk it had to split. Every byte pulled from upstream is emitted exactly
    once and in order: ``bytes_out + pending == bytes_in`` at all times.

    Single pass; the chunker is its own iterator.
    """

    def __init__(self, source: AsyncIterable[BytesLike], chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        """Initialize chunker.

        Args:
            source: Upstream byte chunks with arbitrary boundaries
            chunk_size: Exact size of every emitted chunk but the last

        Raises:
            ValueError: If chunk_size is not positive
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._iterator = aiter(source)
        self._chunk_size = chunk_size
        self._pending: bytes | None = None
        self._exhausted = False
        self._bytes_in = 0
        self._bytes_out = 0

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def bytes_in(self) -> int:
        """Total bytes pulled from upstream so far."""
        return self._bytes_in

    @property
    def bytes_out(self) -> int:
        """Total bytes emitted so far."""
        return self._bytes_out

    @property
    def pending_bytes(self) -> int:
        """Bytes carried over for the next chunk."""
        return len(self._pending) if self._pending is not None else 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        if self._pending is not None:
            buffer = bytearray(self._pending)
            self._pending = None
        else:
            first = await self._pull()
            if first is None:
                raise StopAsyncIteration
            buffer = bytearray(first)

        while len(buffer) < self._chunk_size:
            chunk = await self._pull()
            if chunk is None:
                # Upstream is done, flush what is left as the short final chunk
                if buffer:
                    return self._emit(buffer)
                raise StopAsyncIteration

            needed = self._chunk_size - len(buffer)
            if len(chunk) >= needed:
                view = memoryview(chunk)
                buffer += view[:needed]
                tail = view[needed:]
                self._pending = bytes(tail) if len(tail) else None
                return self._emit(buffer)
            buffer += chunk

        # Pending data alone held at least a full chunk
        if len(buffer) > self._chunk_size:
            self._pending = bytes(buffer[self._chunk_size :])
            del buffer[self._chunk_size :]
        return self._emit(buffer)

    async def _pull(self) -> BytesLike | None:
        if self._exhausted:
            return None
        try:
            chunk = await anext(self._iterator)
        except StopAsyncIteration:
            self._exhausted = True
            return None
        self._bytes_in += len(chunk)
        return chunk

    def _emit(self, buffer: bytearray) -> bytes:
        self._bytes_out += len(buffer)
        return bytes(buffer)

    async def aclose(self) -> None:
        """Stop the sequence and close the upstream iterator if it supports it."""
        self._exhausted = True
        self._pending = None
        aclose = getattr(self._iterator, "aclose", None)
        if aclose is not None:
            await aclose()


def fixed_size_chunks(
    source: AsyncIterable[BytesLike], chunk_size: int = DEFAULT_CHUNK_SIZE
) -> FixedSizeChunker:
    """Return an async iterator of ``chunk_size`` byte chunks over ``source``.

    Args:
        source: Upstream byte chunks with arbitrary boundaries
        chunk_size: Exact size of every emitted chunk but the last

    Returns:
        FixedSizeChunker over the source
    """
    return FixedSizeChunker(source, chunk_size)
