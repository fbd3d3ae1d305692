"""
Suspension points of the control loop.

Every wait the mission makes (polls, dwells, settle, retry backoff, operator
prompt) goes through a Pacer so the abort signal can preempt it. The sleep
and readline callables are injectable, which lets tests run the whole
mission on simulated time.
"""

import asyncio
import logging
import threading
from contextlib import suppress
from typing import Awaitable, Callable

from .abort_listener import AbortSignal
from .errors import MissionCancelled

logger = logging.getLogger(__name__)


class Pacer:
    def __init__(
        self,
        abort: AbortSignal,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        readline: Callable[[str], str] = input,
    ):
        self.abort = abort
        self._sleep = sleep
        self._readline = readline

    def check(self) -> None:
        if self.abort.is_set:
            raise MissionCancelled(self.abort.reason)

    async def hold(self, seconds: float) -> None:
        await self._until_abort(self._sleep(seconds))

    async def prompt(self, message: str) -> str:
        """Wait for one line of operator input. The content is not interpreted."""
        loop = asyncio.get_running_loop()
        fut = loop.create_future()

        def _deliver(result=None, exc=None):
            if fut.done():
                return
            if exc is not None:
                fut.set_exception(exc)
            else:
                fut.set_result(result)

        def _read():
            line, exc = None, None
            try:
                line = self._readline(message)
            except EOFError:
                logger.warning("stdin closed, treating as confirmation")
                line = ""
            except Exception as e:
                exc = e
            if not loop.is_closed():
                loop.call_soon_threadsafe(_deliver, line, exc)

        # Daemon thread so a pending read never holds up process exit
        threading.Thread(target=_read, name="operator-prompt", daemon=True).start()
        return await self._until_abort(fut)

    async def _until_abort(self, aw):
        if self.abort.is_set:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise MissionCancelled(self.abort.reason)

        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self.abort.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (task, waiter):
                if not t.done():
                    t.cancel()
                    with suppress(asyncio.CancelledError):
                        await t

        self.check()
        return task.result()
