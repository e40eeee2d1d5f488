"""Core components."""

from .config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESPONSE_CHUNK_SIZE,
    StreamConfig,
)
from .enums import SinkEvent, WaiterState
from .exceptions import (
    ProtocolViolationError,
    StreamCancelledError,
    StreamingError,
    StreamsError,
)

__all__ = [
    "StreamConfig",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_RESPONSE_CHUNK_SIZE",
    "SinkEvent",
    "WaiterState",
    "StreamsError",
    "StreamingError",
    "StreamCancelledError",
    "ProtocolViolationError",
]
