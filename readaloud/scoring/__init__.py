"""Interface to the external scoring collaborator."""

from .base import AbstractScoringBackend
from .consumer import ScoringConsumer, ScoringTask
from ..models.scoring import ScoreResult

__all__ = [
    "AbstractScoringBackend",
    "ScoringConsumer",
    "ScoringTask",
    "ScoreResult",
]
