"""Bounded outbound command queue with a single forwarding task.

User intents can arrive much faster than the control connection drains
(e.g. spinning a tuning knob). Commands are queued in a bounded buffer that
drops the oldest entry on overflow, so the latest intents always win, and
a single task forwards them in submission order.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from contextlib import suppress

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 64

SendFunc = Callable[[str], Awaitable[None]]
SendErrorHandler = Callable[[Exception], None]


class CommandQueue:
    """FIFO command queue with drop-oldest overflow.

    Example:
        queue = CommandQueue()
        queue.start(connection.send)
        queue.submit("T98100")
        ...
        await queue.stop()
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the queue.

        Args:
            capacity: Maximum number of pending commands.
        """
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._pending: deque[str] = deque(maxlen=capacity)
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._dropped = 0

    @property
    def capacity(self) -> int:
        """Return the maximum number of pending commands."""
        return self._capacity

    @property
    def pending(self) -> int:
        """Return the number of commands waiting to be forwarded."""
        return len(self._pending)

    @property
    def dropped(self) -> int:
        """Return how many commands were dropped on overflow."""
        return self._dropped

    @property
    def is_running(self) -> bool:
        """Return True while the forwarding task is active."""
        return self._task is not None and not self._task.done()

    def start(self, send: SendFunc, on_error: SendErrorHandler | None = None) -> None:
        """Start forwarding commands to ``send``.

        Must be called from within the running event loop.

        Args:
            send: Coroutine function delivering one command.
            on_error: Called when a send fails; forwarding continues.
        """
        if self.is_running:
            raise RuntimeError("Command queue already running")
        self._pending.clear()
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._forward(send, on_error))

    async def stop(self) -> None:
        """Cancel the forwarding task and discard pending commands."""
        task = self._task
        self._task = None
        self._pending.clear()
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    def submit(self, command: str) -> bool:
        """Queue a command for delivery without blocking.

        Args:
            command: Command string.

        Returns:
            False if no forwarding task is running and the command was
            discarded, True otherwise (even if an older command had to be
            dropped to make room).
        """
        if not self.is_running:
            logger.debug("No control connection, discarding command %s", command)
            return False
        if len(self._pending) == self._capacity:
            dropped = self._pending[0]
            self._dropped += 1
            logger.debug("Command queue full, dropping %s", dropped)
        self._pending.append(command)
        self._wakeup.set()
        return True

    async def _forward(self, send: SendFunc, on_error: SendErrorHandler | None) -> None:
        """Forward queued commands in order until cancelled."""
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending:
                command = self._pending.popleft()
                logger.debug("Sending command %s", command)
                try:
                    await send(command)
                except Exception as e:
                    logger.warning("Failed to send command %s: %s", command, e)
                    if on_error:
                        on_error(e)
