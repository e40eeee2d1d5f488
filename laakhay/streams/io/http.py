"""Streaming HTTP client helper.

Composes the byte transport components around an aiohttp session: a
streaming request body is driven through a BackpressureBridge into a
MemoryPipe whose read side aiohttp consumes, and the response body is
rechunked into fixed-size buffers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator, Mapping
from typing import Any

import aiohttp

from ..core.config import StreamConfig
from ..core.exceptions import StreamCancelledError
from .bridge import BackpressureBridge
from .rechunk import FixedSizeChunker
from .sinks import MemoryPipe

logger = logging.getLogger(__name__)

RequestBody = bytes | bytearray | AsyncIterable[bytes] | None


async def _failing_pipe_on_error(
    body: AsyncIterable[bytes], pipe: MemoryPipe
) -> AsyncIterator[bytes]:
    # A failed pipe makes aiohttp abort the request instead of ending the body early
    iterator = aiter(body)
    try:
        async for chunk in iterator:
            yield chunk
    except Exception as e:
        pipe.fail(e)
        raise
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


class StreamingResponse:
    """Response whose body is read as fixed-size chunks."""

    def __init__(self, response: aiohttp.ClientResponse, chunk_size: int) -> None:
        self._response = response
        self._chunk_size = chunk_size

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def headers(self) -> Mapping[str, str]:
        return self._response.headers

    def raise_for_status(self) -> None:
        self._response.raise_for_status()

    def chunks(self, chunk_size: int | None = None) -> FixedSizeChunker:
        """Return the body as chunks of exactly ``chunk_size`` bytes (last may be shorter)."""
        return FixedSizeChunker(self._response.content.iter_any(), chunk_size or self._chunk_size)

    async def read(self) -> bytes:
        """Read the whole body."""
        body = bytearray()
        async for chunk in self.chunks():
            body += chunk
        return bytes(body)

    def release(self) -> None:
        """Release the underlying connection."""
        self._response.release()

    async def __aenter__(self) -> StreamingResponse:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()


class StreamingHTTPClient:
    """Async HTTP client wrapper with streaming request and response bodies."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        config: StreamConfig | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.config = config or StreamConfig()
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def _url(self, url: str) -> str:
        # If base_url is set and url is relative, combine them
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url}{url}"
        return url

    async def send(
        self,
        method: str,
        url: str,
        *,
        body: RequestBody = None,
        headers: dict[str, str] | None = None,
    ) -> StreamingResponse:
        """Send a request, streaming ``body`` when it is an async iterable.

        Args:
            method: HTTP method
            url: Absolute URL, or path relative to base_url
            body: Raw bytes, an async byte source, or None
            headers: Request headers

        Returns:
            StreamingResponse; the caller releases it

        Raises:
            StreamingError: If the request body failed to stream
            aiohttp.ClientError: If the request failed
            Exception: Whatever the body source raised
        """
        url = self._url(url)
        if body is None or isinstance(body, (bytes, bytearray)):
            response = await self.session.request(method, url, data=body, headers=headers)
            return StreamingResponse(response, self.config.response_chunk_size)

        pipe = MemoryPipe(capacity=self.config.max_buffer_size)
        bridge = BackpressureBridge(
            FixedSizeChunker(_failing_pipe_on_error(body, pipe), self.config.chunk_size),
            pipe,
            max_buffer_size=self.config.max_buffer_size,
        )
        upload = asyncio.create_task(bridge.run())
        try:
            response = await self.session.request(
                method, url, data=pipe.iter_chunks(), headers=headers
            )
        except BaseException as e:
            bridge.discard()
            if not upload.done():
                upload.cancel()
            (outcome,) = await asyncio.gather(upload, return_exceptions=True)
            # Surface the body source failure rather than the aborted transport
            if (
                isinstance(e, Exception)
                and isinstance(outcome, Exception)
                and not isinstance(outcome, StreamCancelledError)
            ):
                raise outcome from e
            raise

        if not upload.done():
            # The server answered before reading the whole body
            logger.debug(f"{method} {url} answered {response.status} before the body was sent")
            bridge.discard()
        try:
            written = await upload
        except StreamCancelledError:
            written = bridge.bytes_written
        except BaseException:
            response.release()
            raise
        logger.debug(f"Streamed {written} bytes to {method} {url}")
        return StreamingResponse(response, self.config.response_chunk_size)

    async def stream(
        self,
        method: str,
        url: str,
        *,
        body: RequestBody = None,
        headers: dict[str, str] | None = None,
        chunk_size: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Send a request and yield its response body in fixed-size chunks.

        Raises:
            aiohttp.ClientResponseError: If the response status is an error
        """
        async with await self.send(method, url, body=body, headers=headers) as response:
            response.raise_for_status()
            async for chunk in response.chunks(chunk_size):
                yield chunk

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> StreamingHTTPClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
