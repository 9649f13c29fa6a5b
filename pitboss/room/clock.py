"""
Phase deadlines and background scheduling for a room.

A room has at most one phase deadline at a time (betting close, insurance
close, action timeout or the pause between rounds). ``PhaseClock`` holds it.
In automatic mode an armed deadline fires after its delay; in manual mode it
waits until ``fire()`` is called, which is how the room's explicit advance
works. Arming a new deadline always cancels the previous one.

The clock also owns the room's background tasks (fired deadlines, the dealer
turn, delayed pre-actions) so their failures are logged instead of lost, and
so tests can wait for the room to go quiet with ``idle()``.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set, Union

logger = logging.getLogger("pitboss.room.clock")

DeadlineCallback = Callable[[], Union[None, Awaitable[Any]]]


class Phase(Enum):
    """Room phases, in round order. The value is the wire name."""

    LOBBY = "lobby"
    BETTING = "betting"
    INSURANCE = "insurance"
    DEALING = "dealing"
    PLAYING = "playing"
    DEALER = "dealer"
    RESULTS = "results"


class _Deadline:
    __slots__ = ("seconds", "callback", "label", "handle", "expires_at")

    def __init__(self, seconds: float, callback: DeadlineCallback, label: str):
        self.seconds = seconds
        self.callback = callback
        self.label = label
        self.handle: Optional[asyncio.TimerHandle] = None
        self.expires_at: Optional[float] = None


class PhaseClock:
    """
    The single phase-deadline abstraction.

    Args:
        manual: Start in manual mode, where deadlines only fire on ``fire()``.
    """

    def __init__(self, manual: bool = False):
        self._manual = manual
        self._deadline: Optional[_Deadline] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def manual(self) -> bool:
        return self._manual

    def set_manual(self, manual: bool) -> None:
        """
        Switch between automatic and manual mode. A pending deadline is
        re-armed in the new mode with its full delay.
        """
        if manual == self._manual:
            return
        self._manual = manual
        pending = self._deadline
        if pending is not None:
            self.arm(pending.seconds, pending.callback, pending.label)
        logger.info("Phase clock switched to %s mode", "manual" if manual else "automatic")

    @property
    def pending(self) -> Optional[str]:
        """Label of the armed deadline, if any."""
        return self._deadline.label if self._deadline else None

    def remaining(self) -> Optional[float]:
        """Seconds until the armed deadline fires; None if nothing is scheduled."""
        deadline = self._deadline
        if deadline is None or deadline.expires_at is None:
            return None
        return max(0.0, deadline.expires_at - asyncio.get_running_loop().time())

    def arm(self, seconds: float, callback: DeadlineCallback, label: str = "") -> None:
        """
        Arm the phase deadline, replacing any previous one.

        Args:
            seconds: Delay before the deadline fires in automatic mode
            callback: Called when the deadline fires; may be a coroutine function
            label: Name used in logs and ``pending``
        """
        self.cancel()
        deadline = _Deadline(seconds, callback, label)
        self._deadline = deadline
        if self._manual:
            logger.debug("Deadline '%s' waiting for manual advance", label)
            return
        loop = asyncio.get_running_loop()
        deadline.expires_at = loop.time() + seconds
        deadline.handle = loop.call_later(seconds, self._expire, deadline)
        logger.debug("Deadline '%s' armed for %.1fs", label, seconds)

    def cancel(self) -> None:
        deadline = self._deadline
        self._deadline = None
        if deadline is not None and deadline.handle is not None:
            deadline.handle.cancel()

    def _expire(self, deadline: _Deadline) -> None:
        if deadline is not self._deadline:
            return
        self._deadline = None
        logger.debug("Deadline '%s' expired", deadline.label)
        result = deadline.callback()
        if inspect.isawaitable(result):
            self.spawn(result, name=f"deadline:{deadline.label}")

    async def fire(self) -> bool:
        """
        Fire the armed deadline now, whatever the mode, and wait for it.

        Returns:
            False if no deadline was armed
        """
        deadline = self._deadline
        if deadline is None:
            return False
        self.cancel()
        logger.debug("Deadline '%s' fired early", deadline.label)
        result = deadline.callback()
        if inspect.isawaitable(result):
            await result
        return True

    async def sleep(self, seconds: float) -> None:
        """Cooperative pause; other intents are processed while it runs."""
        await asyncio.sleep(max(0.0, seconds))

    def spawn(self, coro: Awaitable[Any], name: Optional[str] = None) -> asyncio.Task:
        """Run ``coro`` in the background, logging any exception it raises."""
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s", task.get_name(), exc, exc_info=exc
            )

    async def idle(self) -> None:
        """Wait until no background tasks remain, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel the deadline and every background task."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
