"""
Transcription source interface for Guide Circle.

A transcription source turns a participant's speech into text while a
recording is active. The orchestrator only keeps the latest result it was
given; streaming semantics are up to the source.
"""

from abc import ABC, abstractmethod
from typing import Callable

ResultCallback = Callable[[str], None]


class CaptureUnavailable(Exception):
    """Raised when speech capture cannot start (permission denied, no recognizer)."""
    pass


class TranscriptionSource(ABC):
    """Base interface for speech-to-text collaborators."""

    @abstractmethod
    async def start(self, on_result: ResultCallback) -> None:
        """
        Begin listening.

        Args:
            on_result: Called with each partial or final transcription

        Raises:
            CaptureUnavailable: If capture cannot begin
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop listening and deliver any final result before returning."""
        pass
