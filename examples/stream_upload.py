#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import os
from collections.abc import AsyncIterator

from laakhay.streams import BackpressureBridge, MemoryPipe, fixed_size_chunks


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Push random bytes through a bounded pipe")
    p.add_argument("size", nargs="?", type=int, default=100_000)
    p.add_argument("chunk_size", nargs="?", type=int, default=4096)
    p.add_argument("capacity", nargs="?", type=int, default=1024)
    return p.parse_args()


async def producer(size: int) -> AsyncIterator[bytes]:
    remaining = size
    while remaining > 0:
        piece = os.urandom(min(remaining, 3000))
        remaining -= len(piece)
        yield piece


async def consumer(pipe: MemoryPipe) -> int:
    received = 0
    async for chunk in pipe.iter_chunks():
        received += len(chunk)
        # Slow reader so the bridge has to wait for capacity
        await asyncio.sleep(0)
    return received


async def main() -> None:
    args = parse_args()
    pipe = MemoryPipe(capacity=args.capacity)
    bridge = BackpressureBridge(fixed_size_chunks(producer(args.size), args.chunk_size), pipe)

    written, received = await asyncio.gather(bridge.run(), consumer(pipe))
    print("=" * 40)
    print(f"Bytes written  : {written}")
    print(f"Bytes received : {received}")
    print(f"Pipe capacity  : {pipe.capacity}")
    print("=" * 40)


if __name__ == "__main__":
    asyncio.run(main())
