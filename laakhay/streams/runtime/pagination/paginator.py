"""Cursor-driven pagination over a single paged operation.

This module provides the Paginator class, a lazy async iterator that walks a
paged operation page by page, threading the cursor extracted from each output
into the next input.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable
from operator import attrgetter
from time import perf_counter
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from ...core.exceptions import ProtocolViolationError
from .definitions import (
    CursorGetter,
    CursorSetter,
    CursorT,
    InputT,
    OutputT,
    PageCall,
    PaginationStats,
    is_absent_cursor,
)
from .telemetry import log_page_error, log_page_fetched, log_pagination_complete

AccT = TypeVar("AccT")
ItemT = TypeVar("ItemT")
ModelInputT = TypeVar("ModelInputT", bound=BaseModel)
ModelOutputT = TypeVar("ModelOutputT", bound=BaseModel)


class Paginator(Generic[InputT, OutputT, CursorT]):
    """Lazy, single-pass sequence of pages from a paged operation.

    Each ``__anext__`` issues exactly one call. Request n+1 is only built after
    response n has been received, so cursors are never sent concurrently. The
    page whose output carries no next cursor is delivered and then the
    sequence ends.

    A failed call ends the sequence: the exception propagates unchanged and
    later pulls raise StopAsyncIteration. Cancelling the consuming task ends
    it the same way. Repeated cursors are not detected; the operation is
    responsible for making progress.

    Example:
        >>> pages = Paginator(
        ...     ListInput(page_size=4),
        ...     client.list_items,
        ...     get_cursor=lambda out: out.next_token,
        ...     set_cursor=lambda inp, token: inp.model_copy(update={"token": token}),
        ... )
        >>> async for page in pages:
        ...     handle(page.items)
    """

    def __init__(
        self,
        input: InputT,
        call: PageCall[OutputT],
        *,
        get_cursor: CursorGetter[OutputT, CursorT],
        set_cursor: CursorSetter[InputT, CursorT],
        context: Any = None,
        name: str | None = None,
    ) -> None:
        """Initialize paginator.

        Args:
            input: Initial input; its cursor (possibly absent) is sent first
            call: Async operation returning one page for an input
            get_cursor: Extracts the optional next cursor from an output
            set_cursor: Builds the next input from the previous one and a cursor
            context: Optional context passed as second argument to every call
            name: Identifier used in telemetry (defaults to the call's name)
        """
        self._input = input
        self._call = call
        self._get_cursor = get_cursor
        self._set_cursor = set_cursor
        self._context = context
        self._name = name or getattr(call, "__qualname__", None) or type(call).__name__
        self._finished = False
        self._in_flight = False
        self._stats = PaginationStats()

    @property
    def name(self) -> str:
        """Identifier used in telemetry."""
        return self._name

    @property
    def finished(self) -> bool:
        """Whether the sequence can produce no more pages."""
        return self._finished

    @property
    def stats(self) -> PaginationStats:
        """Running statistics of this sequence."""
        return self._stats

    def __aiter__(self) -> AsyncIterator[OutputT]:
        return self

    async def __anext__(self) -> OutputT:
        if self._in_flight:
            raise ProtocolViolationError(
                f"Paginator {self._name!r} is already fetching a page; pages must be pulled sequentially"
            )
        if self._finished:
            raise StopAsyncIteration

        page_index = self._stats.pages_fetched
        request = self._input
        # Terminal unless the call succeeds with a next cursor
        self._finished = True
        self._in_flight = True
        started = perf_counter()
        try:
            if self._context is None:
                output = await self._call(request)
            else:
                output = await self._call(request, self._context)
            cursor = self._get_cursor(output)
        except asyncio.CancelledError:
            self._stats.finished = True
            raise
        except Exception as e:
            self._stats.finished = True
            self._stats.failed = True
            log_page_error(
                paginator_id=self._name,
                page_index=page_index,
                cursor=self._stats.last_cursor,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            log_pagination_complete(paginator_id=self._name, stats=self._stats)
            raise
        finally:
            self._in_flight = False

        latency_ms = (perf_counter() - started) * 1000.0
        has_more = not is_absent_cursor(cursor)
        self._stats.pages_fetched += 1
        self._stats.total_latency_ms += latency_ms
        log_page_fetched(
            paginator_id=self._name,
            page_index=page_index,
            has_more=has_more,
            latency_ms=latency_ms,
        )

        if has_more:
            if self._stats.first_cursor is None:
                self._stats.first_cursor = cursor
            self._stats.last_cursor = cursor
            self._input = self._set_cursor(request, cursor)
            self._finished = False
        else:
            self._stats.finished = True
            log_pagination_complete(paginator_id=self._name, stats=self._stats)
        return output

    async def reduce(self, fn: Callable[[AccT, OutputT], AccT], initial: AccT) -> AccT:
        """Fold every remaining page into an accumulator.

        Args:
            fn: Combines the accumulator with the next page
            initial: Starting accumulator

        Returns:
            Final accumulator

        Raises:
            Exception: Whatever the operation call raised
        """
        acc = initial
        async for page in self:
            acc = fn(acc, page)
        return acc

    async def collect(self) -> list[OutputT]:
        """Fetch every remaining page into a list."""
        return [page async for page in self]

    async def items(self, extract: Callable[[OutputT], Iterable[ItemT]]) -> AsyncIterator[ItemT]:
        """Yield the items of every remaining page in order.

        Args:
            extract: Returns the iterable of items carried by a page
        """
        async for page in self:
            for item in extract(page):
                yield item


def paginate(
    input: InputT,
    call: PageCall[OutputT],
    *,
    get_cursor: CursorGetter[OutputT, CursorT],
    set_cursor: CursorSetter[InputT, CursorT],
    context: Any = None,
    name: str | None = None,
) -> Paginator[InputT, OutputT, CursorT]:
    """Create a paginator; see Paginator for semantics."""
    return Paginator(
        input,
        call,
        get_cursor=get_cursor,
        set_cursor=set_cursor,
        context=context,
        name=name,
    )


def paginate_model(
    input: ModelInputT,
    call: PageCall[ModelOutputT],
    *,
    input_key: str,
    output_key: str,
    context: Any = None,
    name: str | None = None,
) -> Paginator[ModelInputT, ModelOutputT, Any]:
    """Create a paginator over pydantic request/response models.

    The cursor is read from ``output.<output_key>`` and written into a copy of
    the input as ``<input_key>``.

    Args:
        input: Initial request model
        call: Async operation returning a response model
        input_key: Name of the cursor field on the request model
        output_key: Name of the next-cursor field on the response model
        context: Optional context passed as second argument to every call
        name: Identifier used in telemetry

    Returns:
        Paginator over response models

    Raises:
        ValueError: If input_key is not a field of the request model
    """
    if input_key not in type(input).model_fields:
        raise ValueError(f"{type(input).__name__} has no field {input_key!r}")

    def set_cursor(request: ModelInputT, cursor: Any) -> ModelInputT:
        return request.model_copy(update={input_key: cursor})

    return Paginator(
        input,
        call,
        get_cursor=attrgetter(output_key),
        set_cursor=set_cursor,
        context=context,
        name=name,
    )
