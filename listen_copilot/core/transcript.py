"""
Transcript accumulation and the conversation log.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Literal

from .errors import ChatError

logger = logging.getLogger(__name__)

Role = Literal["user", "ai"]


@dataclass
class ConversationEntry:
    role: Role
    text: str
    timestamp: float = field(default_factory=time.time)


class Conversation:
    """Ordered record of flushed messages and chat replies."""

    def __init__(self, on_change: Callable[[ConversationEntry], None] | None = None):
        self.on_change = on_change
        self.entries: list[ConversationEntry] = []

    def add(self, role: Role, text: str) -> ConversationEntry:
        entry = ConversationEntry(role=role, text=text)
        self.entries.append(entry)
        if self.on_change:
            self.on_change(entry)
        return entry

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)


class TranscriptAccumulator:
    """
    Merges transcription results into one running utterance.

    The buffer is flushed to the chat service when a result contains a
    question mark, or on an explicit ``flush()``. The buffer is cleared in
    the same step that captures it, so every trigger flushes at most once.
    """

    def __init__(
        self,
        send_chat: Callable[[str], Awaitable[str]],
        conversation: Conversation | None = None,
        on_update: Callable[[str], None] | None = None,
    ):
        self.send_chat = send_chat
        self.conversation = conversation or Conversation()
        self.on_update = on_update
        self._buffer = ""

    @property
    def text(self) -> str:
        return self._buffer

    def _set_buffer(self, text: str) -> None:
        self._buffer = text
        if self.on_update:
            self.on_update(text)

    async def add_result(self, text: str) -> bool:
        """
        Append one delivery result.

        Args:
            text: Transcribed text for a segment

        Returns:
            True if the result triggered a flush
        """
        text = text.strip()
        if not text:
            return False

        self._set_buffer(f"{self._buffer} {text}" if self._buffer else text)

        if "?" in text:
            await self.flush()
            return True
        return False

    async def flush(self) -> str | None:
        """
        Send the buffered transcript as one chat message.

        Returns:
            The message sent, or None if the buffer was empty
        """
        message = self._buffer.strip()
        if not message:
            return None
        self._set_buffer("")

        self.conversation.add("user", message)
        try:
            reply = await self.send_chat(message)
        except ChatError as e:
            logger.warning(f"Chat request failed: {e}")
            self.conversation.add("ai", f"❌ {e}")
        else:
            self.conversation.add("ai", reply)
        return message
