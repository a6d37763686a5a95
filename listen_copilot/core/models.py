"""
Data model shared by the capture, segmentation and dispatch components.
"""

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Callable, Protocol

import numpy as np

ChunkCallback = Callable[[bytes], None]


class AudioSource(Protocol):
    """
    An acquired audio source.

    Owned by the capture session manager and lent to recorders and the
    silence detector. Only the manager may release it.
    """

    def tracks(self) -> list[int]: ...

    def subscribe(self, callback: ChunkCallback) -> None: ...

    def unsubscribe(self, callback: ChunkCallback) -> None: ...

    def read_window(self, size: int) -> np.ndarray: ...

    def release(self) -> None: ...


class RecorderState(enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    FINALIZING = "finalizing"


@dataclass(frozen=True)
class AudioSegment:
    """A finalized span of captured audio (WAV encoded)."""

    data: bytes
    sequence: int
    created_at: float

    @property
    def filename(self) -> str:
        return f"chunk_{int(self.created_at * 1000)}.wav"

    @property
    def size(self) -> int:
        return len(self.data)


class Recorder:
    """
    Buffers PCM chunks from a source for the lifetime of one segment.

    A recorder is single use: IDLE -> RECORDING -> FINALIZING, after which
    the manager drops it.
    """

    def __init__(self, source: AudioSource):
        self.state = RecorderState.IDLE
        self._source = source
        self._buffer = bytearray()

    @property
    def is_recording(self) -> bool:
        return self.state is RecorderState.RECORDING

    @property
    def buffered_bytes(self) -> int:
        return len(self._buffer)

    def start(self) -> None:
        """Subscribe to the source and begin buffering."""
        if self.state is not RecorderState.IDLE:
            raise RuntimeError(f"Recorder cannot start from state {self.state.value}")
        self._source.subscribe(self._on_chunk)
        self.state = RecorderState.RECORDING

    def _on_chunk(self, audio_bytes: bytes) -> None:
        if self.state is not RecorderState.IDLE:
            self._buffer.extend(audio_bytes)

    async def stop(self) -> bytes:
        """
        Finalize the recorder and return everything it captured.

        Chunks already scheduled on the loop are let through before the
        recorder unsubscribes, so the tail of the segment is kept.
        """
        self.state = RecorderState.FINALIZING
        await asyncio.sleep(0)
        self._source.unsubscribe(self._on_chunk)
        return self.take()

    def take(self) -> bytes:
        """Return the buffered bytes and clear the buffer."""
        audio_bytes = bytes(self._buffer)
        self._buffer.clear()
        return audio_bytes


@dataclass
class RestartGuard:
    in_progress: bool = False


@dataclass
class CaptureSession:
    """
    State of one listening session.

    Components receive this object by reference; the ``user_stopped`` flag
    stays visible to in-flight tasks after the manager drops the session.
    """

    source: AudioSource
    active: bool = True
    user_stopped: bool = False
    recorder: Recorder | None = None
    guard: RestartGuard = field(default_factory=RestartGuard)
    detector_enabled: bool = False

    @property
    def is_recording(self) -> bool:
        return self.recorder is not None and self.recorder.is_recording
