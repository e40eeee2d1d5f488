#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio

from pydantic import BaseModel

from laakhay.streams import paginate_model


class CounterInput(BaseModel):
    input_token: int | None = None
    page_size: int


class CounterOutput(BaseModel):
    array: list[int]
    output_token: int | None = None


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Walk an in-memory paged counter")
    p.add_argument("total", nargs="?", type=int, default=23)
    p.add_argument("page_size", nargs="?", type=int, default=4)
    return p.parse_args()


async def main() -> None:
    args = parse_args()

    async def counter(request: CounterInput) -> CounterOutput:
        start = request.input_token or 0
        end = min(start + request.page_size, args.total)
        return CounterOutput(
            array=list(range(start, end)),
            output_token=end if end != args.total else None,
        )

    paginator = paginate_model(
        CounterInput(page_size=args.page_size),
        counter,
        input_key="input_token",
        output_key="output_token",
    )
    print("=" * 40)
    async for page in paginator:
        print(f"page {paginator.stats.pages_fetched:>3} : {page.array}")
    print("=" * 40)
    print(f"Pages fetched : {paginator.stats.pages_fetched}")


if __name__ == "__main__":
    asyncio.run(main())
