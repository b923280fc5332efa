"""Clock abstraction and timeout racing for async uploads"""
import asyncio
import time
from typing import Awaitable, Protocol, TypeVar, runtime_checkable

from ..exceptions import UploadTimeoutError

T = TypeVar("T")


@runtime_checkable
class Clock(Protocol):
    """Source of time and delays, injected so retry and timeout logic can be driven by tests"""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Clock backed by time.monotonic and asyncio.sleep"""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


async def race_with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    clock: Clock,
    description: str = "operation"
) -> T:
    """
    Race an awaitable against a timer on the given clock

    Whichever settles first wins. If the timer fires first the awaitable is
    cancelled (we stop waiting; work already handed to a thread keeps running)
    and UploadTimeoutError is raised. If both are done in the same loop pass
    the awaitable's outcome wins.

    Args:
        awaitable: Coroutine or future to wait for
        timeout_seconds: Time budget
        clock: Clock providing the timer
        description: Label used in the timeout message

    Returns:
        The awaitable's result

    Raises:
        UploadTimeoutError: The timer fired first
        Exception: Whatever the awaitable raised
    """
    task = asyncio.ensure_future(awaitable)
    timer = asyncio.ensure_future(clock.sleep(timeout_seconds))
    try:
        await asyncio.wait({task, timer}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        timer.cancel()
        if not task.done():
            task.cancel()

    if task.done() and not task.cancelled():
        return task.result()
    raise UploadTimeoutError(f"{description} timed out after {timeout_seconds * 1000:.0f}ms")
