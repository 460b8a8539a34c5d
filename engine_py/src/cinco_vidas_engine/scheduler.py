"""
Cancellable scheduled continuations for sessions.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class AsyncioScheduler:
    """Runs one-shot and periodic callbacks as asyncio tasks on the running loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.Task:
        async def _run():
            await asyncio.sleep(delay)
            callback()
        return asyncio.get_running_loop().create_task(_run())

    def call_every(self, interval: float, callback: Callable[[], None]) -> asyncio.Task:
        async def _run():
            while True:
                await asyncio.sleep(interval)
                callback()
        return asyncio.get_running_loop().create_task(_run())


class TimerSlots:
    """
    Named timer slots for one session. Arming a slot cancels whatever was
    pending in it, so at most one continuation per slot is ever live.
    """

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self._handles: Dict[str, object] = {}

    def once(self, key: str, delay: float, callback: Callable[[], None]):
        self.cancel(key)
        self._handles[key] = self.scheduler.call_later(delay, self._wrap(key, callback, once=True))

    def every(self, key: str, interval: float, callback: Callable[[], None]):
        self.cancel(key)
        self._handles[key] = self.scheduler.call_every(interval, self._wrap(key, callback, once=False))

    def _wrap(self, key: str, callback: Callable[[], None], once: bool) -> Callable[[], None]:
        def fire():
            if once:
                # Drop the slot first so the callback may re-arm it
                self._handles.pop(key, None)
            logger.debug(f"Timer {key} fired")
            callback()
        return fire

    def cancel(self, key: str):
        handle: Optional[object] = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def cancel_prefix(self, prefix: str):
        for key in [k for k in self._handles if k.startswith(prefix)]:
            self.cancel(key)

    def cancel_all(self):
        for key in list(self._handles):
            self.cancel(key)

    def pending(self, key: str) -> bool:
        return key in self._handles

    def __len__(self):
        return len(self._handles)
