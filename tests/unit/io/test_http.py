"""Unit tests for StreamingHTTPClient.

Tests focus on session management, streaming request bodies through the
backpressure bridge, and rechunked response bodies.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from aiohttp import test_utils, web

from laakhay.streams.core.config import StreamConfig
from laakhay.streams.io.http import StreamingHTTPClient, StreamingResponse


async def source(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        await asyncio.sleep(0)
        yield chunk


def make_response(body_chunks: list[bytes], status: int = 200) -> MagicMock:
    response = MagicMock(spec=aiohttp.ClientResponse)
    response.status = status
    response.headers = {"content-type": "application/octet-stream"}
    response.content = MagicMock()
    response.content.iter_any = lambda: source(body_chunks)
    return response


def make_client(request, config: StreamConfig | None = None) -> StreamingHTTPClient:
    client = StreamingHTTPClient(base_url="https://api.example.com", config=config)
    session = MagicMock()
    session.closed = False
    session.request = request
    client._session = session
    return client


class TestStreamingHTTPClientSession:
    """Test StreamingHTTPClient session management."""

    def test_init(self):
        """Test client initialization."""
        client = StreamingHTTPClient(timeout=10.0)
        assert client.timeout.total == 10.0
        assert client._session is None
        assert client.config == StreamConfig()

    @pytest.mark.asyncio
    async def test_session_property_creates_session(self):
        """Test session property creates session when needed."""
        client = StreamingHTTPClient()
        session = client.session
        assert isinstance(session, aiohttp.ClientSession)
        assert client._session is session
        await client.close()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test client as async context manager."""
        async with StreamingHTTPClient() as client:
            session = client.session

        assert session.closed


class TestStreamingHTTPClientSend:
    """Test streaming requests and responses."""

    @pytest.mark.asyncio
    async def test_bytes_body_passed_through(self):
        """Raw bytes bodies are handed to aiohttp unchanged."""
        request = AsyncMock(return_value=make_response([b"ok"]))
        client = make_client(request)

        response = await client.send("PUT", "/objects/a", body=b"payload")

        request.assert_awaited_once_with(
            "PUT", "https://api.example.com/objects/a", data=b"payload", headers=None
        )
        assert isinstance(response, StreamingResponse)
        assert response.status == 200
        assert await response.read() == b"ok"

    @pytest.mark.asyncio
    async def test_async_body_streamed_through_pipe(self):
        """An async body reaches the transport intact in bounded chunks."""
        data = random.Random(3).randbytes(1000)
        pieces = [data[i : i + 37] for i in range(0, len(data), 37)]
        received = bytearray()
        sizes = []

        async def request(method, url, data=None, headers=None):
            async for chunk in data:
                sizes.append(len(chunk))
                received.extend(chunk)
            return make_response([b"done"])

        config = StreamConfig(chunk_size=64, max_buffer_size=128, response_chunk_size=16)
        client = make_client(request, config)

        response = await client.send("POST", "/upload", body=source(pieces))

        assert bytes(received) == data
        assert max(sizes) <= 128
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_request_failure_tears_down_upload(self):
        """A failed request discards the bridge and closes the body source."""
        closed = False

        async def body() -> AsyncIterator[bytes]:
            nonlocal closed
            try:
                for _ in range(100):
                    yield b"x" * 50
            finally:
                closed = True

        async def request(method, url, data=None, headers=None):
            await anext(data)
            raise aiohttp.ClientConnectionError("connection reset")

        client = make_client(request, StreamConfig(chunk_size=32, max_buffer_size=64))

        with pytest.raises(aiohttp.ClientConnectionError):
            await client.send("POST", "/upload", body=body())
        assert closed

    @pytest.mark.asyncio
    async def test_response_rechunked(self):
        """Response bodies are re-emitted in fixed-size chunks."""
        response_chunks = [b"ab", b"cdefg", b"h", b"ijklmnop", b"q"]
        request = AsyncMock(return_value=make_response(response_chunks))
        client = make_client(request, StreamConfig(response_chunk_size=4))

        response = await client.send("GET", "/objects/a")
        chunks = [chunk async for chunk in response.chunks()]

        assert chunks == [b"abcd", b"efgh", b"ijkl", b"mnop", b"q"]

    @pytest.mark.asyncio
    async def test_stream_yields_chunks_and_releases(self):
        """stream() yields fixed-size chunks and releases the response."""
        raw = make_response([b"0123456789"])
        client = make_client(AsyncMock(return_value=raw), StreamConfig(response_chunk_size=4))

        chunks = [chunk async for chunk in client.stream("GET", "/objects/a")]

        assert chunks == [b"0123", b"4567", b"89"]
        raw.raise_for_status.assert_called_once()
        raw.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_stream_raises_for_status(self):
        """stream() surfaces error statuses."""
        raw = make_response([b"nope"], status=404)
        raw.raise_for_status.side_effect = aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=404
        )
        client = make_client(AsyncMock(return_value=raw))

        with pytest.raises(aiohttp.ClientResponseError):
            async for _ in client.stream("GET", "/missing"):
                pass
        raw.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_absolute_url_not_joined(self):
        """Absolute URLs ignore base_url."""
        request = AsyncMock(return_value=make_response([]))
        client = make_client(request)

        await client.send("GET", "https://other.example.com/x")

        assert request.await_args.args[1] == "https://other.example.com/x"


async def start_server(handler) -> test_utils.TestServer:
    app = web.Application()
    app.router.add_post("/upload", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


class TestStreamingHTTPClientServer:
    """Test streaming uploads against a local aiohttp server."""

    @pytest.mark.asyncio
    async def test_early_response_ends_upload(self):
        """A response sent before the body is read does not leave send() waiting."""

        async def reject(request: web.Request) -> web.Response:
            return web.Response(status=413, text="too large")

        async def body() -> AsyncIterator[bytes]:
            for _ in range(2000):
                yield b"x" * 4096

        server = await start_server(reject)
        try:
            config = StreamConfig(chunk_size=4096, max_buffer_size=8192)
            async with StreamingHTTPClient(config=config) as client:
                response = await asyncio.wait_for(
                    client.send("POST", str(server.make_url("/upload")), body=body()),
                    timeout=5.0,
                )
                assert response.status == 413
                response.release()
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_source_error_aborts_request(self):
        """A failing body source aborts the request and surfaces the source error."""
        stored = []

        async def store(request: web.Request) -> web.Response:
            stored.append(await request.read())
            return web.Response(text="stored")

        async def body() -> AsyncIterator[bytes]:
            yield b"a" * 100
            raise ValueError("source broke")

        server = await start_server(store)
        try:
            async with StreamingHTTPClient() as client:
                with pytest.raises(ValueError, match="source broke"):
                    await asyncio.wait_for(
                        client.send("POST", str(server.make_url("/upload")), body=body()),
                        timeout=5.0,
                    )
            assert stored == []
        finally:
            await server.close()
