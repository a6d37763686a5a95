"""
Terminal front end: reads session commands from stdin and prints the
running transcript and the conversation.
"""

import asyncio
import logging
import sys
from datetime import datetime

from ..core.errors import ListenCopilotError
from ..core.transcript import ConversationEntry
from ..interfaces.microphone import list_input_devices
from .pipeline import ListenPipeline

logger = logging.getLogger(__name__)

HELP = """Commands:
  start              start listening (or reopen a segment)
  stop               stop listening
  <enter> | send     send the current transcript to the AI
  next               close the current segment now
  devices            list audio input devices
  set <name> <value> tune threshold | silence_ms | settle_ms
  clear              clear the conversation
  help               show this message
  quit               exit"""

SETTINGS = {
    "threshold": ("silence_threshold", float),
    "silence_ms": ("silence_duration_ms", float),
    "settle_ms": ("settle_delay_ms", float),
}


class ConsoleApp:
    """Command loop around a ListenPipeline."""

    def __init__(self, pipeline: ListenPipeline | None = None):
        self.pipeline = pipeline or ListenPipeline(
            on_transcript=self._on_transcript,
            on_conversation=self._on_conversation,
        )

    def _on_transcript(self, text: str) -> None:
        if text:
            print(f"📝 {text}")

    def _on_conversation(self, entry: ConversationEntry) -> None:
        timestamp = datetime.fromtimestamp(entry.timestamp).strftime("%H:%M:%S")
        label = "You" if entry.role == "user" else "AI"
        print(f"[{timestamp}] {label}: {entry.text}")

    async def handle(self, line: str) -> bool:
        """
        Execute one command line.

        Returns:
            False when the app should exit
        """
        parts = line.split()
        command = parts[0].lower() if parts else "send"

        if command == "quit":
            return False
        if command == "start":
            try:
                await self.pipeline.start()
            except ListenCopilotError as e:
                print(f"❌ Could not start audio capture: {e}")
            else:
                print("🎙️ Listening...")
        elif command == "stop":
            await self.pipeline.stop()
            print("⏹ Stopped.")
        elif command == "send":
            if await self.pipeline.flush() is None:
                print("Nothing to send.")
        elif command == "next":
            await self.pipeline.restart_segment()
        elif command == "devices":
            try:
                devices = list_input_devices()
            except (ImportError, OSError) as e:
                print(f"❌ Could not list audio devices: {e}")
            else:
                for index, name, channels in devices:
                    print(f"  [{index}] {name} ({channels} ch)")
        elif command == "set" and len(parts) == 3 and parts[1] in SETTINGS:
            field_name, cast = SETTINGS[parts[1]]
            try:
                value = cast(parts[2])
            except ValueError:
                print(f"Invalid value: {parts[2]}")
            else:
                self.pipeline.config_store.update(**{field_name: value})
                print(f"{parts[1]} = {value}")
        elif command == "clear":
            self.pipeline.conversation.clear()
        else:
            print(HELP)
        return True

    async def run(self) -> None:
        print(HELP)
        try:
            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:  # EOF
                    break
                if not await self.handle(line):
                    break
        finally:
            await self.pipeline.close()


def launch() -> None:
    """Run the console app until the user quits."""
    try:
        asyncio.run(ConsoleApp().run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
