"""
Core configuration constants for capture, segmentation and delivery.
These are transport-agnostic settings.
"""

import os

# -------------------------
# AUDIO CONFIG
# -------------------------
SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes per sample (int16)
CHUNK_MS = 50  # size of each chunk delivered by the capture callback

# -------------------------
# SILENCE DETECTOR
# -------------------------
ANALYSER_WINDOW = 2048  # samples used for each RMS measurement
POLL_INTERVAL_MS = 1000 / 60  # ~display refresh cadence
SILENCE_THRESHOLD = 0.01  # RMS below this counts as silence
SILENCE_DURATION_MS = 800  # continuous silence required for a boundary

# -------------------------
# RESTART COORDINATOR
# -------------------------
SETTLE_DELAY_MS = 50  # pause between finalizing a segment and starting the next

# -------------------------
# HTTP COLLABORATORS
# -------------------------
API_BASE = os.getenv("LISTEN_COPILOT_API_BASE", "http://localhost:8000")
TRANSCRIBE_PATH = "/api/transcribe/"
CHAT_PATH = "/api/chat/"
HTTP_TIMEOUT_S = 30.0
