"""
Silence detection over the live audio source.
Polls the latest sample window, measures RMS energy and signals a segment
boundary after sustained silence.
This module is independent of any transport or UI.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import Callable

import numpy as np

from . import config
from .models import CaptureSession

logger = logging.getLogger(__name__)


def compute_rms(samples: np.ndarray | list[float]) -> float:
    """Root-mean-square energy of a sample window (0.0 for an empty window)."""
    window = np.asarray(samples, dtype=np.float64)
    if window.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(window))))


@dataclass
class SilenceState:
    """Silence bookkeeping, mutated only by the detector's tick."""

    sustained_since: float | None = None
    is_silent: bool = False

    def reset(self) -> None:
        self.sustained_since = None
        self.is_silent = False


class SilenceDetector:
    """
    RMS-based silence detector.

    Runs as a self re-arming task on the event loop. Each tick measures the
    most recent window from the session's source and, once the level has
    stayed below the threshold for longer than the configured duration,
    invokes ``on_boundary`` exactly once for that silent interval.
    """

    def __init__(
        self,
        session: CaptureSession,
        on_boundary: Callable[[], None] | None = None,
        threshold: float = config.SILENCE_THRESHOLD,
        duration_ms: float = config.SILENCE_DURATION_MS,
        poll_interval_ms: float = config.POLL_INTERVAL_MS,
        window_size: int = config.ANALYSER_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.on_boundary = on_boundary
        self.threshold = threshold
        self.duration_ms = duration_ms
        self.poll_interval_ms = poll_interval_ms
        self.window_size = window_size
        self._clock = clock

        self.state = SilenceState()
        self.last_rms = 0.0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def can_trigger(self) -> bool:
        """Whether a boundary may be emitted right now."""
        session = self.session
        return (
            not session.user_stopped
            and not session.guard.in_progress
            and session.is_recording
        )

    def tick(self, now: float | None = None) -> bool:
        """
        Take one measurement and update the silence state.

        Args:
            now: Timestamp in seconds (defaults to the detector clock)

        Returns:
            True if a boundary signal was emitted on this tick
        """
        if now is None:
            now = self._clock()

        rms = compute_rms(self.session.source.read_window(self.window_size))
        self.last_rms = rms
        state = self.state

        if rms >= self.threshold:
            # Speech resets the timer unconditionally
            state.reset()
            return False

        if not state.is_silent:
            state.is_silent = True
            state.sustained_since = now
            return False

        silent_ms = (now - state.sustained_since) * 1000.0
        if silent_ms <= self.duration_ms or not self.can_trigger():
            return False

        logger.info(f"Silence for {silent_ms:.0f} ms (rms={rms:.4f}), segment boundary")
        state.reset()
        if self.on_boundary:
            self.on_boundary()
        return True

    async def run(self) -> None:
        """Tick until the session is stopped by the user."""
        logger.debug("Silence detector loop started")
        while not self.session.user_stopped:
            try:
                self.tick()
            except Exception:
                logger.exception("Silence detector tick failed")
            await asyncio.sleep(self.poll_interval_ms / 1000.0)
        logger.debug("Silence detector loop finished")

    def start(self) -> None:
        """Schedule the polling loop on the running event loop."""
        if self.running:
            return
        self.state.reset()
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name="silence-detector"
        )

    async def stop(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self.state.reset()

    def update_config(
        self,
        threshold: float | None = None,
        duration_ms: float | None = None,
        poll_interval_ms: float | None = None,
        window_size: int | None = None,
    ) -> None:
        """
        Update detector configuration at runtime.
        Only non-None values are updated.
        """
        if threshold is not None:
            self.threshold = threshold

        if duration_ms is not None:
            self.duration_ms = duration_ms

        if poll_interval_ms is not None:
            self.poll_interval_ms = poll_interval_ms

        if window_size is not None:
            self.window_size = window_size
