"""Fan-out/fan-in helper for independent read-only calls."""

import asyncio
from typing import Any, Awaitable, List


async def join_all(*aws: Awaitable[Any]) -> List[Any]:
    """Run awaitables concurrently and wait for every one to settle.

    Nothing is cancelled when a sibling fails. Once all have finished, the
    first exception in argument order is re-raised; otherwise the results
    are returned in the same order as the arguments.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
