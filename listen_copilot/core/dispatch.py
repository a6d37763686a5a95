"""
Segment queue and dispatcher.
Delivers finalized segments to the transcription service one at a time,
in creation order.
"""

import asyncio
import contextlib
import inspect
import logging
from collections import deque
from typing import Awaitable, Callable

from .errors import DeliveryError
from .models import AudioSegment

logger = logging.getLogger(__name__)

DeliverFn = Callable[[AudioSegment], Awaitable[str]]
ResultFn = Callable[[AudioSegment, str], Awaitable[None] | None]


class SegmentDispatcher:
    """
    FIFO queue of audio segments with a single drain task.

    The drain task pops the head, awaits its delivery and only then moves on,
    so at most one delivery is outstanding. Failed deliveries are dropped.
    """

    def __init__(
        self,
        deliver: DeliverFn,
        on_result: ResultFn | None = None,
    ):
        self.deliver = deliver
        self.on_result = on_result

        self._queue: deque[AudioSegment] = deque()
        self._drain_task: asyncio.Task | None = None
        self.in_flight = 0
        self.delivered = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def enqueue(self, segment: AudioSegment) -> None:
        """Append a segment and make sure the drain task is running."""
        self._queue.append(segment)
        logger.debug(f"Segment #{segment.sequence} queued ({len(self._queue)} pending)")
        if not self.is_draining:
            self._drain_task = asyncio.get_running_loop().create_task(
                self._drain(), name="segment-dispatcher"
            )

    async def _drain(self) -> None:
        while self._queue:
            segment = self._queue.popleft()
            self.in_flight += 1
            try:
                text = await self.deliver(segment)
            except DeliveryError as e:
                self.dropped += 1
                logger.warning(f"Dropping segment #{segment.sequence}: {e}")
                continue
            except Exception:
                self.dropped += 1
                logger.exception(f"Dropping segment #{segment.sequence}")
                continue
            finally:
                self.in_flight -= 1

            self.delivered += 1
            if self.on_result is None:
                continue
            try:
                result = self.on_result(segment, text)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Result handler failed for segment #{segment.sequence}")

    async def join(self) -> None:
        """Wait until the queue is empty and no delivery is outstanding."""
        while self.is_draining:
            await asyncio.wait({self._drain_task})

    async def close(self) -> None:
        """Cancel the drain task and discard anything still queued."""
        self._queue.clear()
        task, self._drain_task = self._drain_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
