"""
Scheduler - keyed one-shot and recurring timers

Every timer lives under a stable key ("rotation", "reconnect:bot2").
Arming a key always cancels whatever was armed under it first, so a key can
never have two live timers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

TimerCallback = Callable[[], Union[None, Awaitable[Any]]]


@dataclass
class _TimerEntry:
    key: str
    delay: float
    callback: TimerCallback
    repeat: bool
    handle: asyncio.TimerHandle


class Scheduler:
    """
    Owns every timer handle in the process

    Responsibilities:
    - arm(key, delay, callback) with cancel-then-set semantics
    - cancel(key) / cancel_all() by explicit handle cancellation
    - Run coroutine callbacks as tasks and keep references until they finish
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger("bloom.scheduler")
        self._timers: Dict[str, _TimerEntry] = {}
        self._running_tasks: Set[asyncio.Task] = set()

    def arm(self, key: str, delay: float, callback: TimerCallback, repeat: bool = False) -> None:
        """
        Arm a timer under key, replacing any timer already armed there

        Args:
            key: Stable timer name
            delay: Seconds until the callback fires (and between firings if repeat)
            callback: Plain function or coroutine function, called without arguments
            repeat: Fire every `delay` seconds until cancelled
        """
        if delay < 0:
            raise ValueError(f"Timer delay must be >= 0, got {delay}")

        self.cancel(key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay, self._fire, key)
        self._timers[key] = _TimerEntry(key=key, delay=delay, callback=callback, repeat=repeat, handle=handle)
        self.logger.debug(f"⏰ [SCHEDULER] Armed {key} for {delay:.1f}s (repeat={repeat})")

    def cancel(self, key: str) -> bool:
        """Cancel the timer under key; returns True if one was armed"""
        entry = self._timers.pop(key, None)
        if entry is None:
            return False
        entry.handle.cancel()
        self.logger.debug(f"⏹️ [SCHEDULER] Cancelled {key}")
        return True

    def cancel_all(self) -> None:
        for key in list(self._timers):
            self.cancel(key)

    def is_armed(self, key: str) -> bool:
        return key in self._timers

    def armed_keys(self) -> List[str]:
        return sorted(self._timers)

    def get_delay(self, key: str) -> Optional[float]:
        entry = self._timers.get(key)
        return entry.delay if entry else None

    async def wait_idle(self) -> None:
        """Wait for callbacks that are currently running (used at shutdown)"""
        if self._running_tasks:
            await asyncio.gather(*list(self._running_tasks), return_exceptions=True)

    def _fire(self, key: str) -> None:
        entry = self._timers.get(key)
        if entry is None:
            return

        if entry.repeat:
            # Schedule the next firing before running the callback; the callback
            # is free to re-arm or cancel its own key
            loop = asyncio.get_running_loop()
            entry.handle = loop.call_later(entry.delay, self._fire, key)
        else:
            self._timers.pop(key, None)

        try:
            result = entry.callback()
        except Exception as e:
            self.logger.error(f"❌ [SCHEDULER] Timer {key} callback failed: {e}")
            return

        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            self._running_tasks.add(task)
            task.add_done_callback(lambda t, key=key: self._on_task_done(key, t))

    def _on_task_done(self, key: str, task: asyncio.Task) -> None:
        self._running_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"❌ [SCHEDULER] Timer {key} callback failed: {error}")
