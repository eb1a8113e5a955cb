#!/usr/bin/env python3
"""
Flow-controlled frame sender for the constrained transport.

Notifications on a BLE characteristic complete asynchronously and the
stack drops data when too many are outstanding. ChunkedSender keeps at most
a small window of notifications in flight, waits for completions instead
of polling, and paces frames with a coarse three-tier delay chosen from a
smoothed throughput estimate:

    <= 5 KB/s   -> 50 ms between frames
    >= 20 KB/s  ->  1 ms between frames
    otherwise   -> 20 ms between frames

The first failed notification aborts the send, as does losing the last
subscriber or a full window that frees no slot within the window timeout.
After the final frame the window is drained with a bounded timeout;
failures while draining are logged only, so a True result means every
frame was submitted, not that every frame was acknowledged.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Maximum notifications in flight at once.
MAX_PENDING_OPS: int = 3

# Re-estimate throughput every this many frames.
RATE_SAMPLE_INTERVAL: int = 5

# Overall timeout for draining the window after the last frame (seconds).
DRAIN_TIMEOUT: float = 5.0

# Longest wait for a free window slot before the send is abandoned (seconds).
WINDOW_TIMEOUT: float = 5.0

# While the window is full, the subscriber is re-checked this often (seconds).
CONNECTION_CHECK_INTERVAL: float = 0.1

# Weight of the newest sample in the throughput estimate.
RATE_SMOOTHING: float = 0.5

SLOW_THRESHOLD_BPS: float = 5000.0
FAST_THRESHOLD_BPS: float = 20000.0
SLOW_DELAY_MS: int = 50
DEFAULT_DELAY_MS: int = 20
FAST_DELAY_MS: int = 1


def select_delay_ms(bytes_per_second: float) -> int:
    """Map a throughput estimate to an inter-frame delay tier."""
    if bytes_per_second <= SLOW_THRESHOLD_BPS:
        return SLOW_DELAY_MS
    if bytes_per_second >= FAST_THRESHOLD_BPS:
        return FAST_DELAY_MS
    return DEFAULT_DELAY_MS


@dataclass
class TransferStats:
    """Figures from the most recent ChunkedSender.send() call."""

    frames_total: int = 0
    frames_submitted: int = 0
    bytes_submitted: int = 0
    elapsed: float = 0.0
    throughput: float | None = None
    delay_ms: int = DEFAULT_DELAY_MS
    drain_failures: int = 0


class ChunkedSender:
    """
    Pushes frames over a notification channel with a bounded window.

    Args:
        notify: Sends one frame to all subscribed peers; resolves to True
            when every peer accepted it.
        is_connected: Returns False once no peer is subscribed.
        window_size: Maximum notifications in flight.
        drain_timeout: Seconds allowed for the window to empty at the end.
        window_timeout: Seconds allowed for a full window to free a slot.
        clock: Seconds clock used for the throughput estimate.
        sleep: Coroutine used for inter-frame delays.
    """

    def __init__(
        self,
        notify: Callable[[bytes], Awaitable[bool]],
        is_connected: Callable[[], bool],
        window_size: int = MAX_PENDING_OPS,
        drain_timeout: float = DRAIN_TIMEOUT,
        window_timeout: float = WINDOW_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if window_size < 1:
            raise ValueError(f"Window size must be positive, got {window_size}")
        self._notify = notify
        self._is_connected = is_connected
        self.window_size = window_size
        self.drain_timeout = drain_timeout
        self.window_timeout = window_timeout
        self._clock = clock
        self._sleep = sleep
        self.last_stats = TransferStats()

    async def _send_one(self, frame: bytes) -> bool:
        return bool(await self._notify(frame))

    @staticmethod
    def _succeeded(task: asyncio.Task) -> bool:
        if task.cancelled():
            logger.error("Notification was cancelled")
            return False
        exc = task.exception()
        if exc is not None:
            logger.error("Notification failed: %s", exc)
            return False
        if not task.result():
            logger.error("Notification failed for client")
            return False
        return True

    async def send(self, frames: Sequence[bytes]) -> bool:
        """
        Send frames in order.

        Args:
            frames: Encoded frames of one transfer.

        Returns:
            True if every frame was submitted without an observed failure
            and the peer stayed subscribed; False otherwise.
        """
        stats = TransferStats(frames_total=len(frames))
        self.last_stats = stats
        pending: set[asyncio.Task] = set()
        start = self._clock()
        sample_time = start
        sample_bytes = 0

        loop = asyncio.get_running_loop()
        try:
            for index, frame in enumerate(frames):
                deadline = loop.time() + self.window_timeout
                while len(pending) >= self.window_size:
                    logger.debug("Flow control: waiting for pending operations")
                    done, pending = await asyncio.wait(
                        pending,
                        timeout=min(CONNECTION_CHECK_INTERVAL, self.window_timeout),
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                    results = [self._succeeded(task) for task in done]
                    if not all(results):
                        return False
                    if not self._is_connected():
                        logger.error("Client disconnected while operations were pending")
                        return False
                    if not done and loop.time() >= deadline:
                        logger.error(
                            "No pending operation completed within %.1fs", self.window_timeout
                        )
                        return False

                pending.add(asyncio.ensure_future(self._send_one(frame)))
                stats.frames_submitted += 1
                stats.bytes_submitted += len(frame)
                logger.debug(
                    "Sent chunk %d/%d (%d bytes) - %d pending",
                    index + 1,
                    len(frames),
                    len(frame),
                    len(pending),
                )

                if stats.frames_submitted % RATE_SAMPLE_INTERVAL == 0:
                    now = self._clock()
                    elapsed = now - sample_time
                    if elapsed > 0:
                        rate = (stats.bytes_submitted - sample_bytes) / elapsed
                        if stats.throughput is None:
                            stats.throughput = rate
                        else:
                            stats.throughput = (
                                RATE_SMOOTHING * rate
                                + (1 - RATE_SMOOTHING) * stats.throughput
                            )
                        stats.delay_ms = select_delay_ms(stats.throughput)
                        sample_time = now
                        sample_bytes = stats.bytes_submitted
                        logger.debug(
                            "Transfer speed: %.2f bytes/sec | Delay: %dms",
                            stats.throughput,
                            stats.delay_ms,
                        )

                if not self._is_connected():
                    logger.error("Client disconnected during transmission")
                    return False

                if index < len(frames) - 1:
                    await self._sleep(stats.delay_ms / 1000.0)

            if pending:
                logger.debug("Waiting for %d remaining operations", len(pending))
                done, not_done = await asyncio.wait(pending, timeout=self.drain_timeout)
                for task in done:
                    if not self._succeeded(task):
                        stats.drain_failures += 1
                if not_done:
                    logger.warning(
                        "Timed out waiting for %d final operations", len(not_done)
                    )
                    stats.drain_failures += len(not_done)
                pending = not_done
            return True
        finally:
            for task in pending:
                task.cancel()
            stats.elapsed = self._clock() - start
