"""
Cancellation Handle - Cooperative stop signal for one exchange.
"""

import asyncio
from typing import Awaitable, TypeVar

from ..core.errors import Cancelled

T = TypeVar("T")


class CancellationHandle:
    """
    One-shot stop signal shared by the controller, client and reader.

    ``run`` races pending I/O against the signal so a stalled read or
    request returns control as soon as ``cancel()`` is called.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the handle is signalled first.

        Raises:
            Cancelled: the handle was signalled before the awaitable finished
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise Cancelled("cancelled before start")

        work = asyncio.ensure_future(awaitable)
        stop = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, stop):
                if not task.done():
                    task.cancel()
            await asyncio.gather(work, stop, return_exceptions=True)

        if work in done and not work.cancelled():
            return work.result()
        raise Cancelled("cancelled while waiting")
