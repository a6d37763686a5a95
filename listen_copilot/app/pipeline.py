"""
Listening pipeline - orchestrates audio source -> segments -> transcription
-> transcript -> chat.
"""

import logging
from typing import Awaitable, Callable

from ..core.dispatch import SegmentDispatcher
from ..core.models import AudioSegment, AudioSource, CaptureSession
from ..core.restart import RestartCoordinator
from ..core.runtime_config import ConfigStore, RuntimeConfig, get_config_store
from ..core.session import CaptureSessionManager
from ..core.transcript import Conversation, ConversationEntry, TranscriptAccumulator
from ..interfaces.api import ChatClient, TranscriptionClient
from ..interfaces.microphone import MicrophoneSource

logger = logging.getLogger(__name__)


class ListenPipeline:
    """
    Continuous listening pipeline.

    Exposes the session commands (``start``/``stop``) and the manual flush
    to whatever front end drives it. The front end only sees callbacks for
    transcript and conversation updates.
    """

    def __init__(
        self,
        acquire: Callable[[], AudioSource] | None = None,
        transcribe: Callable[[AudioSegment], Awaitable[str]] | None = None,
        send_chat: Callable[[str], Awaitable[str]] | None = None,
        config_store: ConfigStore | None = None,
        on_transcript: Callable[[str], None] | None = None,
        on_conversation: Callable[[ConversationEntry], None] | None = None,
    ):
        self.config_store = config_store or get_config_store()
        runtime_config = self.config_store.get()

        self._transcriber: TranscriptionClient | None = None
        self._chat: ChatClient | None = None
        if transcribe is None:
            self._transcriber = TranscriptionClient()
            transcribe = self._transcriber.transcribe
        if send_chat is None:
            self._chat = ChatClient()
            send_chat = self._chat.send

        self.conversation = Conversation(on_change=on_conversation)
        self.accumulator = TranscriptAccumulator(
            send_chat=send_chat,
            conversation=self.conversation,
            on_update=on_transcript,
        )
        self.dispatcher = SegmentDispatcher(
            deliver=transcribe,
            on_result=self._handle_result,
        )
        self.manager = CaptureSessionManager(
            acquire=acquire or MicrophoneSource.open,
            on_segment=self.dispatcher.enqueue,
            runtime_config=runtime_config,
        )
        self.coordinator = RestartCoordinator(
            self.manager, settle_delay_ms=runtime_config.settle_delay_ms
        )
        self.manager.on_boundary = self.coordinator.trigger

        self.config_store.add_listener(self._apply_config)

    @property
    def is_listening(self) -> bool:
        return self.manager.is_active

    @property
    def session(self) -> CaptureSession | None:
        return self.manager.session

    async def start(self) -> CaptureSession:
        """
        Start listening, or reopen a segment if the session has none.

        Raises:
            DeviceUnavailable: The audio source could not be acquired
            NoAudioTrack: The source carries no audio channel
        """
        session = self.manager.start()
        if not session.is_recording and not session.guard.in_progress:
            self.manager.begin_segment(session)
        if not session.detector_enabled:
            logger.warning("Automatic segmentation unavailable; use restart_segment()")
        return session

    async def restart_segment(self) -> bool:
        """Close the current segment and open the next one (manual control)."""
        session = self.manager.session
        if session is not None and session.guard.in_progress:
            logger.debug("Restart already in progress")
            return False
        if session is not None and not session.is_recording:
            self.manager.begin_segment(session)
            return True
        return await self.coordinator.restart()

    async def stop(self) -> None:
        """Stop listening; the last segment is still transcribed."""
        await self.manager.stop()
        await self.coordinator.wait_idle()

    async def flush(self) -> str | None:
        """Manual flush of the running transcript to the chat service."""
        return await self.accumulator.flush()

    async def _handle_result(self, segment: AudioSegment, text: str) -> None:
        logger.debug(f"Segment #{segment.sequence} transcript: {text!r}")
        await self.accumulator.add_result(text)

    def _apply_config(self, runtime_config: RuntimeConfig) -> None:
        self.manager.update_config(runtime_config)
        self.coordinator.settle_delay_ms = runtime_config.settle_delay_ms

    async def close(self) -> None:
        """Stop capture, finish pending deliveries and close HTTP clients."""
        await self.stop()
        await self.dispatcher.join()
        await self.dispatcher.close()
        self.config_store.remove_listener(self._apply_config)
        if self._transcriber is not None:
            await self._transcriber.close()
        if self._chat is not None:
            await self._chat.close()
