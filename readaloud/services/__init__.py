"""Application services."""

from .recording_service import RecordingService

__all__ = ["RecordingService"]
