"""Recording state machine and its collaborators."""

from .voice_recorder import VoiceRecorder, WAV_SAMPLE_RATE, ERROR_DEVICE_UNAVAILABLE, ERROR_NO_AUDIO
from .session import RecordingSession
from .publisher import RecorderEventPublisher
from .hooks import RecordingFinishedHook

__all__ = [
    "VoiceRecorder",
    "WAV_SAMPLE_RATE",
    "ERROR_DEVICE_UNAVAILABLE",
    "ERROR_NO_AUDIO",
    "RecordingSession",
    "RecorderEventPublisher",
    "RecordingFinishedHook",
]
