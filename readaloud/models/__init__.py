"""Data models for the ReadAloud recorder."""

from .audio import (
    RecordingState,
    AudioStats,
    RecordingResult,
    WAV_MIME_TYPE,
    RAW_PCM_MIME_TYPE,
)
from .events import StateChanged, VolumeSample, RecordingCompleted, RecordingFailed
from .session import SessionInfo, new_session_id
from .settings import RecorderSettings
from .scoring import ScoreResult

__all__ = [
    "RecordingState",
    "AudioStats",
    "RecordingResult",
    "WAV_MIME_TYPE",
    "RAW_PCM_MIME_TYPE",
    # Events
    "StateChanged",
    "VolumeSample",
    "RecordingCompleted",
    "RecordingFailed",
    "SessionInfo",
    "new_session_id",
    "RecorderSettings",
    "ScoreResult",
]
