"""
Utility functions: logging setup and PCM helpers.
"""

import io
import logging
import os
import sys
import wave
from typing import Literal

import numpy as np

from .core import config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(
    name: str | None = None,
    level: LogLevel | None = None,
    format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure logging and return a logger.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.
        level: Log level. Defaults to LOG_LEVEL env var or INFO.
        format: Log format string.

    Returns:
        Configured logger instance.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    log_level = getattr(logging, level, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=format,
        stream=sys.stdout,
    )

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    return logger


def pcm_to_float(audio_bytes: bytes) -> np.ndarray:
    """Convert int16 PCM bytes to float32 samples normalized to [-1, 1]."""
    audio_np = np.frombuffer(audio_bytes, dtype=np.int16).astype(np.float32)
    audio_np /= 32768.0
    return audio_np


def encode_wav(
    audio_bytes: bytes,
    sample_rate: int = config.SAMPLE_RATE,
    channels: int = config.CHANNELS,
    sample_width: int = config.SAMPLE_WIDTH,
) -> bytes:
    """Wrap raw PCM bytes in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(audio_bytes)
    return buf.getvalue()
