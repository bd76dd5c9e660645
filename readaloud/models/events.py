"""Event models published by the recorder over the pub/sub channel."""

from dataclasses import dataclass
from typing import Optional

from .audio import RecordingState, RecordingResult


@dataclass(frozen=True)
class StateChanged:
    """The recorder moved from one state to another."""
    session_id: Optional[str]
    state: RecordingState
    previous: RecordingState
    at: float  # Loop time of the transition


@dataclass(frozen=True)
class VolumeSample:
    """One analysis tick: the measured volume and the VAD verdict."""
    session_id: str
    volume: float
    is_speech_active: bool
    at: float


@dataclass(frozen=True)
class RecordingCompleted:
    """Terminal event for a session that produced a clip."""
    result: RecordingResult

    @property
    def session_id(self) -> str:
        return self.result.session_id


@dataclass(frozen=True)
class RecordingFailed:
    """Terminal event for a session that could not produce a clip."""
    session_id: Optional[str]
    reason: str
    at: float
