"""
Exception types raised by the capture pipeline.
"""


class ListenCopilotError(Exception):
    """Base class for pipeline errors."""


class DeviceUnavailable(ListenCopilotError):
    """The audio source could not be acquired."""


class NoAudioTrack(ListenCopilotError):
    """The acquired source carries no audio channel."""


class AlreadyRecording(ListenCopilotError):
    """A recorder is already capturing a segment."""


class NoActiveSession(ListenCopilotError):
    """An operation needs a capture session but none is running."""


class DeliveryError(ListenCopilotError):
    """A segment could not be delivered to the transcription service."""


class ChatError(ListenCopilotError):
    """A message could not be delivered to the chat service."""
