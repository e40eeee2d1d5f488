"""Laakhay Streams - pagination and backpressure-aware byte streaming for async API clients."""

from .core import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESPONSE_CHUNK_SIZE,
    ProtocolViolationError,
    SinkEvent,
    StreamCancelledError,
    StreamConfig,
    StreamingError,
    StreamsError,
    WaiterState,
)
from .io import (
    BackpressureBridge,
    ByteSink,
    FixedSizeChunker,
    MemoryPipe,
    StreamingHTTPClient,
    StreamingResponse,
    WaiterSlot,
    fixed_size_chunks,
    stream_to_sink,
)
from .runtime import Paginator, PaginationStats, paginate, paginate_model

__version__ = "0.1.0"

__all__ = [
    # Pagination
    "Paginator",
    "PaginationStats",
    "paginate",
    "paginate_model",
    # Byte transport
    "FixedSizeChunker",
    "fixed_size_chunks",
    "ByteSink",
    "MemoryPipe",
    "WaiterSlot",
    "BackpressureBridge",
    "stream_to_sink",
    "StreamingHTTPClient",
    "StreamingResponse",
    # Config and enums
    "StreamConfig",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_RESPONSE_CHUNK_SIZE",
    "SinkEvent",
    "WaiterState",
    # Exceptions
    "StreamsError",
    "StreamingError",
    "StreamCancelledError",
    "ProtocolViolationError",
]
