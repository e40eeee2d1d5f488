"""Pagination metadata definitions.

This module defines the callable contracts a paginator is built from and the
statistics it keeps while walking a paged operation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
CursorT = TypeVar("CursorT")

# Extracts the optional next cursor from an output
CursorGetter = Callable[[OutputT], CursorT | None]
# Produces the next input from the previous input and the extracted cursor
CursorSetter = Callable[[InputT, CursorT], InputT]
# The paged operation itself
PageCall = Callable[..., Awaitable[OutputT]]


@dataclass
class PaginationStats:
    """Running statistics for one pagination sequence.

    Attributes:
        pages_fetched: Number of pages successfully delivered
        first_cursor: First next cursor returned by the operation (None before one)
        last_cursor: Cursor carried by the latest follow-up request (None before one)
        finished: Whether the sequence can produce no more pages
        failed: Whether the sequence ended because a call failed
        total_latency_ms: Accumulated time spent inside successful calls
    """

    pages_fetched: int = 0
    first_cursor: Any = None
    last_cursor: Any = None
    finished: bool = False
    failed: bool = False
    total_latency_ms: float = 0.0


def is_absent_cursor(cursor: Any) -> bool:
    """Return True if a cursor means "no more pages".

    None and empty strings, bytes or containers are absent. Falsy scalars such
    as ``0`` are real cursors.

    Args:
        cursor: Cursor extracted from an output

    Returns:
        True if the sequence should stop after the current page
    """
    if cursor is None:
        return True
    if isinstance(cursor, (str, bytes, dict, list, tuple)):
        return len(cursor) == 0
    return False
