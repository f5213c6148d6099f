import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from vending.errors import ErrorKind, VendingError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    backoff_base: float = 0.05,
) -> T:
    """
    Run an operation, retrying when an optimistic write loses a race.

    Only operations that re-read current state on every attempt may be
    retried this way. Errors other than CONCURRENT_MODIFICATION propagate
    immediately.
    """
    for attempt in range(attempts):
        try:
            return await func()
        except VendingError as exc:
            if exc.kind != ErrorKind.CONCURRENT_MODIFICATION or attempt >= attempts - 1:
                raise
            logger.info(f"Optimistic write conflict, retrying (attempt {attempt + 1}/{attempts})")
            await asyncio.sleep(backoff_base * (2 ** attempt))
    raise RuntimeError("run_with_retry called with attempts < 1")
