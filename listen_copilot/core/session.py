"""
Capture session manager.
Owns the audio source for the lifetime of a session and creates and
destroys the per-segment recorders.
"""

import logging
import time
from typing import Callable

from . import config
from .errors import AlreadyRecording, DeviceUnavailable, NoActiveSession, NoAudioTrack
from .models import AudioSegment, AudioSource, CaptureSession, Recorder
from .runtime_config import RuntimeConfig
from .silence import SilenceDetector
from ..utils import encode_wav

logger = logging.getLogger(__name__)


class CaptureSessionManager:
    """
    Manages the capture session and enforces a single active recorder.

    Finalized segments are handed to ``on_segment`` in creation order;
    silence boundaries from the detector are forwarded to ``on_boundary``.
    """

    def __init__(
        self,
        acquire: Callable[[], AudioSource],
        on_segment: Callable[[AudioSegment], None] | None = None,
        on_boundary: Callable[[], None] | None = None,
        runtime_config: RuntimeConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._acquire = acquire
        self.on_segment = on_segment
        self.on_boundary = on_boundary
        self.runtime_config = runtime_config or RuntimeConfig()
        self._clock = clock

        self.session: CaptureSession | None = None
        self.detector: SilenceDetector | None = None
        self._next_sequence = 0

    @property
    def is_active(self) -> bool:
        return self.session is not None and self.session.active

    def start(self) -> CaptureSession:
        """
        Acquire the audio source and open a session.

        A second call while a session is active returns that session.

        Raises:
            DeviceUnavailable: The source could not be acquired
            NoAudioTrack: The source carries no audio channel
        """
        if self.is_active:
            logger.debug("Capture session already active")
            return self.session

        try:
            source = self._acquire()
        except DeviceUnavailable:
            raise
        except Exception as e:
            raise DeviceUnavailable(f"Could not acquire audio source: {e}") from e

        if not source.tracks():
            source.release()
            raise NoAudioTrack("No audio detected on the selected source")

        session = CaptureSession(source=source)
        self.session = session
        self._start_detector(session)
        logger.info("Capture session started")
        return session

    def _start_detector(self, session: CaptureSession) -> None:
        cfg = self.runtime_config
        try:
            detector = SilenceDetector(
                session,
                on_boundary=self._handle_boundary,
                threshold=cfg.silence_threshold,
                duration_ms=cfg.silence_duration_ms,
                poll_interval_ms=cfg.poll_interval_ms,
                window_size=cfg.analyser_window,
            )
            detector.start()
        except Exception:
            logger.exception(
                "Silence detector setup failed; automatic restart disabled"
            )
            return
        self.detector = detector
        session.detector_enabled = True

    def _handle_boundary(self) -> None:
        if self.on_boundary:
            self.on_boundary()

    def begin_segment(self, session: CaptureSession | None = None) -> Recorder:
        """
        Open a recorder on the session's audio source.

        Raises:
            NoActiveSession: No session is running
            AlreadyRecording: A recorder is already recording
        """
        session = session or self.session
        if session is None or not session.active:
            raise NoActiveSession("No active capture session")
        if session.is_recording:
            raise AlreadyRecording("A recorder is already running")

        recorder = Recorder(session.source)
        recorder.start()
        session.recorder = recorder
        logger.info("Recorder started for fresh segment")
        return recorder

    async def finalize_segment(
        self, session: CaptureSession | None = None
    ) -> AudioSegment | None:
        """
        Finalize the active recorder and enqueue its audio.

        The recorder is always released. Empty segments are discarded.

        Returns:
            The enqueued segment, or None if nothing was enqueued
        """
        session = session or self.session
        if session is None or session.recorder is None:
            return None

        recorder = session.recorder
        session.recorder = None
        try:
            audio_bytes = await recorder.stop()
        except Exception:
            logger.exception("Recorder finalize failed; keeping buffered audio")
            audio_bytes = recorder.take()

        if not audio_bytes:
            logger.debug("Discarding empty segment")
            return None

        segment = AudioSegment(
            data=encode_wav(audio_bytes),
            sequence=self._next_sequence,
            created_at=self._clock(),
        )
        self._next_sequence += 1
        duration_s = len(audio_bytes) / (
            config.SAMPLE_RATE * config.SAMPLE_WIDTH * config.CHANNELS
        )
        logger.info(f"Segment #{segment.sequence} finalized ({duration_s:.2f}s)")

        if self.on_segment:
            self.on_segment(segment)
        return segment

    async def stop(self) -> None:
        """Stop capture completely. Safe to call without a session."""
        session = self.session
        if session is None:
            return

        session.user_stopped = True
        await self.finalize_segment(session)
        session.active = False

        detector, self.detector = self.detector, None
        if detector is not None:
            await detector.stop()

        try:
            session.source.release()
        except Exception:
            logger.exception("Error releasing audio source")

        self.session = None
        logger.info("Capture session stopped")

    def update_config(self, runtime_config: RuntimeConfig) -> None:
        """Apply new tunables to the running detector and future sessions."""
        self.runtime_config = runtime_config
        if self.detector is not None:
            self.detector.update_config(
                threshold=runtime_config.silence_threshold,
                duration_ms=runtime_config.silence_duration_ms,
                poll_interval_ms=runtime_config.poll_interval_ms,
                window_size=runtime_config.analyser_window,
            )
