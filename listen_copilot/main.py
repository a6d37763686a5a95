#!/usr/bin/env python3
"""
Continuous listening copilot.

- PyAudio callback -> audio source (analyser window + recorder taps)
- silence detector -> segment boundaries -> restart coordinator
- segment dispatcher -> transcription service, one request at a time
- transcript accumulator -> chat service on "?" or manual send
"""

from .app.console import launch
from .utils import setup_logging


def main():
    """Main entry point for the console application."""
    setup_logging()
    launch()


if __name__ == "__main__":
    main()
