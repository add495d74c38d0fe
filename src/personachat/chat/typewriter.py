"""Typewriter reveal scheduling.

Decouples the burstiness of network fragments from the pace at which text is
revealed: fragments are queued character by character and a fixed-period tick
drains a small, backlog-dependent number of characters at a time.

This module hides the design decisions about:
- Reveal pacing (tick period, chunk sizes, backlog threshold)
- How the driving loop is run (an asyncio task sleeping between ticks)
- Exactly-once finalization
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable

from .config import (
    BACKLOG_THRESHOLD,
    BURST_CHUNK_MAX,
    BURST_CHUNK_MIN,
    BURST_STEP,
    STEADY_CHUNK,
    TICK_INTERVAL,
)

RevealCallback = Callable[[str], None]
FinalizeCallback = Callable[[], Awaitable[None]]


def reveal_chunk_size(
    backlog: int,
    threshold: int = BACKLOG_THRESHOLD,
    steady: int = STEADY_CHUNK,
    burst_min: int = BURST_CHUNK_MIN,
    burst_max: int = BURST_CHUNK_MAX,
    burst_step: int = BURST_STEP,
) -> int:
    """Number of characters to reveal on a tick for a given backlog.

    At or below the threshold the steady size is used. Above it the chunk
    starts at ``burst_min`` and grows by one for every ``burst_step`` extra
    queued characters, capped at ``burst_max``.
    """
    if backlog <= threshold:
        return steady
    extra = (backlog - threshold - 1) // burst_step
    return min(burst_max, burst_min + extra)


class TypewriterScheduler:
    """Bounded-rate reveal of one in-flight assistant message.

    Usage:
        scheduler = TypewriterScheduler(on_reveal=append_text, on_finalize=persist)
        scheduler.start()
        async for fragment in stream:
            scheduler.push(fragment)
        scheduler.complete()
        await scheduler.wait()  # returns once everything is revealed and persisted
    """

    def __init__(
        self,
        on_reveal: RevealCallback,
        on_finalize: FinalizeCallback | None = None,
        tick_interval: float = TICK_INTERVAL,
        backlog_threshold: int = BACKLOG_THRESHOLD,
    ):
        """Initialize the scheduler.

        Args:
            on_reveal: Called with each revealed chunk, in order
            on_finalize: Awaited exactly once when the reply is fully revealed
            tick_interval: Seconds between ticks
            backlog_threshold: Backlog above which burst chunks are used
        """
        self._on_reveal = on_reveal
        self._on_finalize = on_finalize
        self._tick_interval = tick_interval
        self._backlog_threshold = backlog_threshold
        self._queue: deque[str] = deque()
        self._revealed: list[str] = []
        self._stream_done = False
        self._finalized = False
        self._stopped = False
        self._task: asyncio.Task | None = None

    @property
    def backlog(self) -> int:
        """Characters received but not yet revealed."""
        return len(self._queue)

    @property
    def visible_text(self) -> str:
        """Everything revealed so far."""
        return "".join(self._revealed)

    @property
    def pending_text(self) -> str:
        """Everything received but not yet revealed."""
        return "".join(self._queue)

    @property
    def stream_done(self) -> bool:
        return self._stream_done

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def push(self, fragment: str) -> None:
        """Queue a fragment for reveal.

        Raises:
            RuntimeError: If the stream was already marked complete or the
                scheduler was stopped
        """
        if self._stream_done or self._stopped:
            raise RuntimeError("Cannot push to a completed or stopped scheduler")
        self._queue.extend(fragment)

    def complete(self) -> None:
        """Signal that no more fragments will arrive."""
        self._stream_done = True

    def tick(self) -> str:
        """Run one reveal step.

        Returns:
            The revealed chunk ("" if nothing was revealed)
        """
        if self._stopped or not self._queue:
            return ""

        size = reveal_chunk_size(len(self._queue), threshold=self._backlog_threshold)
        chunk = "".join(self._queue.popleft() for _ in range(min(size, len(self._queue))))
        self._revealed.append(chunk)
        self._on_reveal(chunk)
        return chunk

    @property
    def drained(self) -> bool:
        """True once the stream is complete and every character is revealed."""
        return self._stream_done and not self._queue

    async def finalize(self) -> bool:
        """Mark the message finished and run the finalize callback once.

        Returns:
            True if this call finalized the message, False if it already was
        """
        if self._finalized:
            return False
        self._finalized = True
        if self._on_finalize is not None:
            await self._on_finalize()
        return True

    async def run(self) -> None:
        """Drive ticks until the reply is drained, then finalize."""
        while not self._stopped:
            self.tick()
            if self.drained:
                await self.finalize()
                return
            await asyncio.sleep(self._tick_interval)

    def start(self) -> None:
        """Start the driving loop as a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def wait(self) -> None:
        """Wait for the driving loop to finish."""
        if self._task is not None:
            await self._task

    def stop(self) -> str:
        """Stop ticking without finalizing.

        Returns:
            Text that was queued but never revealed
        """
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        remaining = "".join(self._queue)
        self._queue.clear()
        return remaining
