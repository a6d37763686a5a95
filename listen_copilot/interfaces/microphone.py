"""
Microphone audio source using PyAudio.
"""

import asyncio
import logging

import numpy as np

from ..core import config
from ..core.errors import DeviceUnavailable
from ..core.models import ChunkCallback
from ..utils import pcm_to_float

logger = logging.getLogger(__name__)


class MicrophoneSource:
    """
    Audio source backed by a PyAudio input stream.

    PortAudio delivers chunks on its own thread; each chunk is handed to the
    event loop, where it updates the analyser window and is passed to every
    subscribed recorder.
    """

    def __init__(
        self,
        device_index: int | None = None,
        sample_rate: int = config.SAMPLE_RATE,
        chunk_ms: int = config.CHUNK_MS,
        window_size: int = config.ANALYSER_WINDOW,
    ):
        self.device_index = device_index
        self.sample_rate = sample_rate
        self.chunk_ms = chunk_ms
        self.frames_per_buffer = int(sample_rate * chunk_ms / 1000)
        self.device_name = "Microphone"

        self._pa = None
        self._stream = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._channels = 0
        self._subscribers: list[ChunkCallback] = []
        self._window = np.zeros(window_size, dtype=np.float32)

    @classmethod
    def open(cls, device_index: int | None = None, **kwargs) -> "MicrophoneSource":
        """Create a source and acquire the device."""
        source = cls(device_index=device_index, **kwargs)
        source.acquire()
        return source

    def acquire(self) -> None:
        """
        Open the input stream.

        Must be called from the thread running the event loop.

        Raises:
            DeviceUnavailable: PyAudio could not open the device
        """
        if self._stream is not None:
            return  # Already running

        import pyaudio

        self._loop = asyncio.get_running_loop()
        try:
            self._pa = pyaudio.PyAudio()
            if self.device_index is not None:
                info = self._pa.get_device_info_by_index(self.device_index)
            else:
                info = self._pa.get_default_input_device_info()

            self.device_name = info["name"]
            self._channels = int(info.get("maxInputChannels", 0))
            if self._channels == 0:
                logger.warning(f"{self.device_name} has no input channels")
                return

            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=config.CHANNELS,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._callback,
            )
            self._stream.start_stream()
        except Exception as e:
            self.release()
            raise DeviceUnavailable(f"Could not open audio input: {e}") from e

        logger.info(f"Microphone: {self.device_name} @ {self.sample_rate}Hz")

    def _callback(
        self,
        in_data: bytes | None,
        frame_count: int,
        time_info: dict[str, float],
        status_flags: int,
    ) -> tuple[None, int]:
        """PyAudio callback (PortAudio thread)."""
        import pyaudio

        loop = self._loop
        if loop is None or loop.is_closed():
            return (None, pyaudio.paComplete)
        if in_data is not None:
            loop.call_soon_threadsafe(self.publish, in_data)
        return (None, pyaudio.paContinue)

    def publish(self, audio_bytes: bytes) -> None:
        """Feed one PCM chunk to the analyser window and the subscribers."""
        samples = pcm_to_float(audio_bytes)
        size = len(self._window)
        self._window = np.concatenate((self._window, samples))[-size:]

        for callback in list(self._subscribers):
            callback(audio_bytes)

    def tracks(self) -> list[int]:
        """Audio channels available on the acquired device."""
        return list(range(self._channels))

    def subscribe(self, callback: ChunkCallback) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: ChunkCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def read_window(self, size: int) -> np.ndarray:
        """Copy of the most recent ``size`` samples."""
        return self._window[-size:].copy()

    def release(self) -> None:
        """Stop the stream and free PyAudio. Idempotent."""
        self._subscribers.clear()

        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except Exception as e:
                logger.warning(f"Error closing input stream: {e}")
            self._stream = None

        if self._pa is not None:
            try:
                self._pa.terminate()
            except Exception as e:
                logger.warning(f"Error terminating PyAudio: {e}")
            self._pa = None

        self._loop = None
        self._channels = 0

    def is_active(self) -> bool:
        """Check if the stream is active."""
        return self._stream is not None and self._stream.is_active()


def list_input_devices() -> list[tuple[int, str, int]]:
    """
    List devices that can record audio.

    Returns:
        (index, name, input channels) for every input-capable device
    """
    import pyaudio

    pa = pyaudio.PyAudio()
    try:
        devices = []
        for i in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(i)
            channels = int(info.get("maxInputChannels", 0))
            if channels > 0:
                devices.append((i, info["name"], channels))
        return devices
    finally:
        pa.terminate()
