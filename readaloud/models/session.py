"""Session-related data models."""

import random
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class SessionInfo:
    """Information about a saved recording."""
    session_id: str
    start_time: datetime
    line_index: Optional[int]
    duration_ms: int
    audio_file: str
    file_size_bytes: int
    sample_rate: int
    mime_type: str


def new_session_id() -> str:
    """Timestamp-based session ID with a random suffix (YYYYMMDD_HHMMSS_xxxx)."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"
