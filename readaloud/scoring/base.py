"""Abstract base class for scoring backends."""

from abc import ABC, abstractmethod
import logging

from ..models.audio import RecordingResult
from ..models.scoring import ScoreResult

logger = logging.getLogger(__name__)


class AbstractScoringBackend(ABC):
    """The external grader: takes a finished clip, returns a score and feedback."""

    def __init__(self, service_name: str):
        self.service_name = service_name

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def score(self, recording: RecordingResult, keywords: str) -> ScoreResult:
        """Score one clip against the expected words.

        Args:
            recording: WAV clip (or original container) and its duration
            keywords: Text the child was asked to read

        Returns:
            ScoreResult with numeric score and feedback text
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
