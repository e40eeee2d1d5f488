"""Custom exception hierarchy."""

from __future__ import annotations


class StreamsError(Exception):
    """Base exception for all library errors."""

    pass


class StreamingError(StreamsError):
    """Error reported by a push sink while streaming bytes into it.

    Raised by the backpressure bridge when the sink signals an error event or
    refuses a write. The sink is still closed before this error surfaces.
    """

    def __init__(self, message: str, bytes_written: int = 0) -> None:
        super().__init__(message)
        self.bytes_written = bytes_written


class StreamCancelledError(StreamsError):
    """Stream was torn down while a producer was suspended on it.

    Distinct from StreamingError so callers can tell a deliberate teardown
    from a transport fault. Cancellation of the surrounding asyncio task
    propagates as ``asyncio.CancelledError`` instead.
    """

    pass


class ProtocolViolationError(StreamsError):
    """A usage contract was broken (second waiter, concurrent page fetch)."""

    pass
