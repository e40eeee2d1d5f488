"""Unit tests for the exception hierarchy."""

from __future__ import annotations

import asyncio

from laakhay.streams.core.exceptions import (
    ProtocolViolationError,
    StreamCancelledError,
    StreamingError,
    StreamsError,
)


def test_hierarchy():
    """All library errors share StreamsError as base."""
    for cls in (StreamingError, StreamCancelledError, ProtocolViolationError):
        assert issubclass(cls, StreamsError)
        assert issubclass(cls, Exception)


def test_cancellation_distinct_from_streaming_failure():
    """Teardown and task cancellation are not transport faults."""
    assert not issubclass(StreamCancelledError, StreamingError)
    assert not issubclass(asyncio.CancelledError, StreamsError)


def test_streaming_error_carries_bytes_written():
    """StreamingError records progress at failure time."""
    error = StreamingError("sink failed", bytes_written=42)
    assert str(error) == "sink failed"
    assert error.bytes_written == 42
    assert StreamingError("x").bytes_written == 0
