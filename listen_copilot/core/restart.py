"""
Restart coordinator.
Closes the current segment on a silence boundary and opens the next one on
the same audio source.
"""

import asyncio
import logging

from . import config
from .models import CaptureSession
from .session import CaptureSessionManager

logger = logging.getLogger(__name__)


class RestartCoordinator:
    """
    Runs the finalize -> settle -> begin sequence.

    The session's restart guard is taken synchronously when a sequence is
    accepted, so repeated boundary signals are no-ops until it completes.
    """

    def __init__(
        self,
        manager: CaptureSessionManager,
        settle_delay_ms: float = config.SETTLE_DELAY_MS,
    ):
        self.manager = manager
        self.settle_delay_ms = settle_delay_ms
        self._tasks: set[asyncio.Task] = set()

    def _acquire_guard(self, session: CaptureSession | None) -> bool:
        if session is None or session.user_stopped:
            return False
        if session.guard.in_progress or not session.is_recording:
            logger.debug("Restart ignored (in progress or not recording)")
            return False
        session.guard.in_progress = True
        return True

    def trigger(self) -> asyncio.Task | None:
        """
        Boundary-signal handler: schedule a restart sequence.

        Returns:
            The scheduled task, or None if the signal was ignored
        """
        session = self.manager.session
        if not self._acquire_guard(session):
            return None

        task = asyncio.get_running_loop().create_task(
            self._run_sequence(session), name="segment-restart"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def restart(self) -> bool:
        """
        Run a restart sequence inline.

        Returns:
            True if a new segment was started
        """
        session = self.manager.session
        if not self._acquire_guard(session):
            return False
        return await self._run_sequence(session)

    async def _run_sequence(self, session: CaptureSession) -> bool:
        try:
            await self.manager.finalize_segment(session)
            await asyncio.sleep(self.settle_delay_ms / 1000.0)

            if session.user_stopped:
                logger.info("Capture stopped by user; not restarting")
                return False

            if session.is_recording:
                logger.debug("Segment already reopened manually")
                return True

            try:
                self.manager.begin_segment(session)
            except Exception:
                logger.exception("Failed to start next segment; waiting for manual restart")
                return False
            return True
        finally:
            session.guard.in_progress = False

    async def wait_idle(self) -> None:
        """Wait for any scheduled restart sequences to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
