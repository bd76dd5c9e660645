"""Voice activity detection."""

from .adaptive import AdaptiveVAD, VADDecision, SpeechRangeAverage

__all__ = [
    "AdaptiveVAD",
    "VADDecision",
    "SpeechRangeAverage",
]
