"""Tests for the bounded outbound CommandQueue."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from fmdxctrl.core.commands import DEFAULT_CAPACITY, CommandQueue


class Recorder:
    """Send function that records commands, optionally blocking."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.gate = asyncio.Event()
        self.gate.set()
        self.fail_on: set[str] = set()

    async def __call__(self, command: str) -> None:
        await self.gate.wait()
        if command in self.fail_on:
            raise ConnectionError(f"cannot send {command}")
        self.sent.append(command)


async def drain(queue: CommandQueue) -> None:
    """Yield until the queue has nothing pending."""
    for _ in range(1000):
        if queue.pending == 0:
            break
        await asyncio.sleep(0)
    await asyncio.sleep(0)


class TestCommandQueueBasics:
    """Test construction and lifecycle."""

    def test_defaults(self) -> None:
        """Test default capacity and idle state."""
        queue = CommandQueue()
        assert queue.capacity == DEFAULT_CAPACITY == 64
        assert queue.pending == 0
        assert queue.dropped == 0
        assert not queue.is_running

    def test_invalid_capacity(self) -> None:
        """Test capacity must be positive."""
        with pytest.raises(ValueError):
            CommandQueue(0)

    def test_submit_when_stopped_discards(self) -> None:
        """Test commands without a connection are discarded."""
        queue = CommandQueue()
        assert not queue.submit("T98100")
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_start_twice_raises(self) -> None:
        """Test starting a running queue is an error."""
        queue = CommandQueue()
        queue.start(Recorder())
        with pytest.raises(RuntimeError):
            queue.start(Recorder())
        await queue.stop()
        assert not queue.is_running

    @pytest.mark.asyncio
    async def test_stop_idempotent(self) -> None:
        """Test stopping twice is safe."""
        queue = CommandQueue()
        queue.start(Recorder())
        await queue.stop()
        await queue.stop()
        assert not queue.is_running


class TestCommandQueueForwarding:
    """Test delivery order and overflow."""

    @pytest.mark.asyncio
    async def test_forwards_in_order(self) -> None:
        """Test commands are delivered in submission order."""
        send = Recorder()
        queue = CommandQueue()
        queue.start(send)

        for command in ("T98100", "G10", "Z1"):
            assert queue.submit(command)
        await drain(queue)

        assert send.sent == ["T98100", "G10", "Z1"]
        await queue.stop()

    @pytest.mark.asyncio
    async def test_overflow_keeps_latest(self) -> None:
        """Test overflow drops the oldest commands and keeps the last 64 in order."""
        send = Recorder()
        send.gate.clear()
        queue = CommandQueue()
        queue.start(send)
        # Let the forwarder take nothing yet
        await asyncio.sleep(0)

        commands = [f"T{87_500 + i * 100}" for i in range(100)]
        for command in commands:
            assert queue.submit(command)

        assert queue.pending == 64
        assert queue.dropped == 36

        send.gate.set()
        await drain(queue)
        assert send.sent == commands[36:]
        await queue.stop()

    @pytest.mark.asyncio
    async def test_small_capacity(self) -> None:
        """Test a custom capacity bounds the buffer."""
        send = Recorder()
        send.gate.clear()
        queue = CommandQueue(capacity=2)
        queue.start(send)
        await asyncio.sleep(0)

        for command in ("Z0", "Z1", "Z2"):
            queue.submit(command)

        assert queue.dropped == 1
        send.gate.set()
        await drain(queue)
        assert send.sent == ["Z1", "Z2"]
        await queue.stop()

    @pytest.mark.asyncio
    async def test_send_failure_reported_and_continues(self) -> None:
        """Test a failing send is reported and later commands still go out."""
        send = Recorder()
        send.fail_on = {"G01"}
        errors: list[Exception] = []
        queue = CommandQueue()
        queue.start(send, on_error=errors.append)

        for command in ("T98100", "G01", "Z1"):
            queue.submit(command)
        await drain(queue)

        assert send.sent == ["T98100", "Z1"]
        assert len(errors) == 1
        assert isinstance(errors[0], ConnectionError)
        await queue.stop()

    @pytest.mark.asyncio
    async def test_stop_discards_pending(self) -> None:
        """Test pending commands are dropped on stop."""
        send = Recorder()
        send.gate.clear()
        queue = CommandQueue()
        queue.start(send)
        await asyncio.sleep(0)
        queue.submit("T98100")
        queue.submit("T98200")

        await queue.stop()

        assert queue.pending == 0
        assert send.sent == []

    @pytest.mark.asyncio
    async def test_send_awaited_with_command(self) -> None:
        """Test the send coroutine is awaited once per command."""
        send = AsyncMock()
        queue = CommandQueue()
        queue.start(send)

        queue.submit("G01")
        await drain(queue)

        send.assert_awaited_once_with("G01")
        await queue.stop()
