"""I/O layer: byte rechunking, bounded sinks and the backpressure bridge."""

from .bridge import BackpressureBridge, WaiterSlot, stream_to_sink
from .http import StreamingHTTPClient, StreamingResponse
from .rechunk import FixedSizeChunker, fixed_size_chunks
from .sinks import ByteSink, MemoryPipe, SinkListener

__all__ = [
    "FixedSizeChunker",
    "fixed_size_chunks",
    "ByteSink",
    "SinkListener",
    "MemoryPipe",
    "WaiterSlot",
    "BackpressureBridge",
    "stream_to_sink",
    "StreamingHTTPClient",
    "StreamingResponse",
]
