"""Shared fixtures: an in-memory audio source and a manual clock."""

import numpy as np
import pytest

from listen_copilot.core.runtime_config import RuntimeConfig


class FakeSource:
    """In-memory AudioSource with a settable RMS level."""

    def __init__(self, channels: int = 1):
        self.channels = channels
        self.level = 0.5
        self.subscribers = []
        self.released = 0

    def tracks(self):
        return list(range(self.channels))

    def subscribe(self, callback):
        self.subscribers.append(callback)

    def unsubscribe(self, callback):
        if callback in self.subscribers:
            self.subscribers.remove(callback)

    def push(self, audio_bytes: bytes = b"\x01\x00" * 160) -> None:
        for callback in list(self.subscribers):
            callback(audio_bytes)

    def read_window(self, size):
        # Constant signal: RMS equals the level
        return np.full(size, self.level, dtype=np.float32)

    def release(self):
        self.released += 1


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_config():
    """Config with no settle delay and a slow poll so tests drive ticks."""
    return RuntimeConfig(settle_delay_ms=0, poll_interval_ms=10_000)
