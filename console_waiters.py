"""
console_waiters.py — Console output waiters

Lets callers await the next console line matching a regex, with a timeout.

Design:
  - One registry per console session; waiters keyed by a generated id.
  - dispatch(line) evaluates EVERY registered waiter against the line, so
    overlapping patterns may all resolve on the same line.
  - A waiter is removed exactly once: on its first match or on its deadline,
    whichever comes first. The deadline timer is always armed, so a caller
    that stops awaiting still gets its registration cleaned up.
  - clear() fails every pending waiter with ConsoleClosed (used on session
    disconnect).

Usage:
    registry = WaiterRegistry()
    line = await registry.wait_for(re.compile(r"Added \\w+ to the whitelist"), 10)
    ...
    registry.dispatch(console_line)   # called by the session reader
"""
import asyncio
import re
import uuid
from typing import Dict, Pattern, Union


class ConsoleTimeout(Exception):
    """No console line matched a waiter before its deadline."""


class ConsoleClosed(Exception):
    """The session was torn down while the waiter was pending."""


class _Waiter:
    __slots__ = ("pattern", "future", "timer")

    def __init__(self, pattern: Pattern, future: asyncio.Future, timer: asyncio.TimerHandle):
        self.pattern = pattern
        self.future  = future
        self.timer   = timer


class WaiterRegistry:

    def __init__(self):
        self._waiters: Dict[str, _Waiter] = {}

    def __len__(self) -> int:
        return len(self._waiters)

    def wait_for(self, pattern: Union[str, Pattern], timeout: float) -> asyncio.Future:
        """
        Register a waiter and return a future for the matching line.

        The waiter is registered immediately (before this returns), so a
        command sent right after the call cannot race its own feedback.
        The future raises ConsoleTimeout if nothing matches within timeout
        seconds.
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern)

        loop      = asyncio.get_running_loop()
        future    = loop.create_future()
        waiter_id = uuid.uuid4().hex
        timer     = loop.call_later(timeout, self._expire, waiter_id, timeout)
        self._waiters[waiter_id] = _Waiter(pattern, future, timer)
        return future

    def dispatch(self, line: str):
        """Resolve every waiter whose pattern matches line."""
        # Snapshot: resolving removes entries from the dict.
        for waiter_id, waiter in list(self._waiters.items()):
            if waiter.pattern.search(line):
                self._remove(waiter_id)
                if not waiter.future.done():
                    waiter.future.set_result(line)

    def clear(self):
        """Fail all pending waiters with ConsoleClosed."""
        for waiter_id in list(self._waiters):
            waiter = self._remove(waiter_id)
            if waiter and not waiter.future.done():
                waiter.future.set_exception(ConsoleClosed("console session closed"))

    def _expire(self, waiter_id: str, timeout: float):
        waiter = self._remove(waiter_id)
        if waiter and not waiter.future.done():
            waiter.future.set_exception(
                ConsoleTimeout(f"no console output matched {waiter.pattern.pattern!r} within {timeout}s")
            )

    def _remove(self, waiter_id: str):
        waiter = self._waiters.pop(waiter_id, None)
        if waiter:
            waiter.timer.cancel()
        return waiter
