"""
Capture boundary for Guide Circle

Audio capture and speech-to-text live outside the orchestrator. This package
defines the contract a transcription source fulfils.
"""

from guidecircle.capture.source import CaptureUnavailable, TranscriptionSource

__all__ = ["CaptureUnavailable", "TranscriptionSource"]
