"""Audio-related data models."""

from dataclasses import dataclass
from enum import Enum


class RecordingState(Enum):
    """Lifecycle state of the recorder. Exactly one holds at any time."""
    IDLE = "idle"
    CALIBRATING = "calibrating"
    RECORDING = "recording"
    PROCESSING = "processing"


WAV_MIME_TYPE = "audio/wav"
RAW_PCM_MIME_TYPE = "audio/L16"


@dataclass
class AudioStats:
    """Microphone capture statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int


@dataclass
class RecordingResult:
    """A finished clip ready to hand to the scoring collaborator."""
    session_id: str
    audio_data: bytes
    mime_type: str
    duration_ms: int
    sample_rate: int
    from_test_asset: bool = False

    @property
    def is_wav(self) -> bool:
        return self.mime_type == WAV_MIME_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.audio_data)
