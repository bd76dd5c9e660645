"""Scoring-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class ScoreResult:
    """Outcome of one opaque scoring call."""
    session_id: str
    score: float
    feedback: str
    service: str
    processing_time: float
    timestamp: datetime = field(default_factory=datetime.now)
    transcript: Optional[str] = None
    line_index: Optional[int] = None
