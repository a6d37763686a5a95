"""
Async HTTP clients for the transcription and chat services.
"""

import logging
from typing import Any

import httpx

from ..core import config
from ..core.errors import ChatError, DeliveryError
from ..core.models import AudioSegment

logger = logging.getLogger(__name__)


def extract_transcript(data: Any) -> str:
    """Read the text of a transcription response (``transcription`` or ``text``)."""
    if not isinstance(data, dict):
        return ""
    text = data.get("transcription") or data.get("text") or ""
    return str(text).strip()


class _ServiceClient:
    """Shared lazily created ``httpx.AsyncClient`` with connection pooling."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = config.HTTP_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or config.API_BASE).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None


class TranscriptionClient(_ServiceClient):
    """Uploads audio segments and returns their transcript."""

    async def transcribe(self, segment: AudioSegment) -> str:
        """
        Send one segment to the transcription service.

        Args:
            segment: Finalized audio segment (WAV)

        Returns:
            Transcribed text (may be empty)

        Raises:
            DeliveryError: On transport failure or a non-success status
        """
        logger.debug(f"Sending segment #{segment.sequence} ({segment.size} bytes)")
        http = await self._get_http()
        try:
            response = await http.post(
                f"{self.base_url}{config.TRANSCRIBE_PATH}",
                files={"file": (segment.filename, segment.data, "audio/wav")},
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"Transcribe request failed: {e}") from e

        if response.is_error:
            raise DeliveryError(
                f"Transcription service returned {response.status_code}: {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DeliveryError("Transcription response is not JSON") from e
        return extract_transcript(data)


class ChatClient(_ServiceClient):
    """Sends a message to the chat service and returns its reply."""

    async def send(self, message: str) -> str:
        """
        Raises:
            ChatError: On transport failure or a non-success status
        """
        http = await self._get_http()
        try:
            response = await http.post(
                f"{self.base_url}{config.CHAT_PATH}",
                json={"message": message},
            )
        except httpx.HTTPError as e:
            logger.error(f"AI error: {e}")
            raise ChatError("Cannot reach AI service.") from e

        if response.is_error:
            raise ChatError(f"AI Error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ChatError("AI Error: invalid response") from e
        reply = data.get("reply") if isinstance(data, dict) else None
        return reply or "No response."
