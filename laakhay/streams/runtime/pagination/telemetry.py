"""Structured logging for pagination sequences.

This module provides telemetry hooks for paginators, emitting structured logs
for observability.
"""

from __future__ import annotations

import logging
from typing import Any

from .definitions import PaginationStats

logger = logging.getLogger(__name__)


def log_page_fetched(
    *,
    paginator_id: str,
    page_index: int,
    has_more: bool,
    latency_ms: float | None = None,
) -> None:
    """Log delivery of a single page.

    Args:
        paginator_id: Paginator identifier
        page_index: Zero-based index of the page
        has_more: Whether the output carried a next cursor
        latency_ms: Latency of the call in milliseconds (optional)
    """
    logger.debug(
        "page_fetched",
        extra={
            "paginator_id": paginator_id,
            "page_index": page_index,
            "has_more": has_more,
            "latency_ms": latency_ms,
        },
    )


def log_page_error(
    *,
    paginator_id: str,
    page_index: int,
    cursor: Any,
    error_type: str,
    error_message: str,
) -> None:
    """Log a failed page call.

    Args:
        paginator_id: Paginator identifier
        page_index: Zero-based index of the page that failed
        cursor: Cursor the failed request carried
        error_type: Type of error (e.g., "ClientResponseError")
        error_message: Error message
    """
    logger.error(
        "page_error",
        extra={
            "paginator_id": paginator_id,
            "page_index": page_index,
            "cursor": repr(cursor),
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_pagination_complete(*, paginator_id: str, stats: PaginationStats) -> None:
    """Log the end of a pagination sequence.

    Args:
        paginator_id: Paginator identifier
        stats: Final statistics of the sequence
    """
    logger.info(
        "pagination_complete",
        extra={
            "paginator_id": paginator_id,
            "pages_fetched": stats.pages_fetched,
            "failed": stats.failed,
            "total_latency_ms": stats.total_latency_ms,
        },
    )
