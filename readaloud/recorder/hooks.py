"""Collaborator hooks invoked by the recorder."""

from abc import ABC, abstractmethod


class RecordingFinishedHook(ABC):
    """Called once whenever a recording session is torn down.

    Playback code implements this to undo whatever the platform did to
    output audio while the microphone was open (ducking, suspended
    contexts). It runs on success, failure and abort alike.
    """

    @abstractmethod
    def on_recording_finished(self) -> None:
        """Restore anything the recording session disturbed."""
        pass
