"""Cursor pagination over paged operations.

Architecture:
    - definitions.py: Cursor accessor contracts and PaginationStats
    - paginator.py: Paginator async iterator and factory helpers
    - telemetry.py: Structured logging

Usage:
    A paginator is built from an initial input, the paged operation and two
    accessors that move the cursor from an output into the next input.
"""

from __future__ import annotations

from .definitions import (
    CursorGetter,
    CursorSetter,
    PageCall,
    PaginationStats,
    is_absent_cursor,
)
from .paginator import Paginator, paginate, paginate_model

__all__ = [
    "Paginator",
    "PaginationStats",
    "CursorGetter",
    "CursorSetter",
    "PageCall",
    "is_absent_cursor",
    "paginate",
    "paginate_model",
]
