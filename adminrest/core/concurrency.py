"""Fan-out helpers for batches that must settle before a request proceeds."""
import asyncio
from collections.abc import Awaitable
from typing import Any


async def gather_settled(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await every awaitable concurrently, then re-raise the first failure.

    No failure is raised while a sibling is still running, so a failed batch
    never leaves work in flight behind the request.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
