"""File management for saved recordings and their metadata."""

import json
import logging
import shutil
from pathlib import Path
from datetime import datetime
from typing import Optional, List
from dataclasses import asdict

from ..models.audio import RecordingResult, WAV_MIME_TYPE
from ..models.session import SessionInfo

logger = logging.getLogger(__name__)

EXTENSIONS = {
    WAV_MIME_TYPE: ".wav",
    "audio/L16": ".pcm",
    "audio/mpeg": ".mp3",
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/mp4": ".m4a",
}


class FileManager:
    """Stores finished clips as <data>/sessions/<session_id>/<clip> + session_info.json."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"
        self.logs_dir = self.data_dir / "logs"

        # Create directory structure
        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.sessions_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def get_session_path(self, session_id: str) -> Path:
        """Get full path to session directory."""
        return self.sessions_dir / session_id

    def save_recording(self, result: RecordingResult, line_index: Optional[int] = None) -> SessionInfo:
        """Write a clip and its session_info.json.

        Args:
            result: Finished clip from the recorder
            line_index: Line of the rhyme this clip belongs to, if any

        Returns:
            The saved SessionInfo
        """
        session_path = self.get_session_path(result.session_id)
        session_path.mkdir(parents=True, exist_ok=True)

        stem = f"line_{line_index + 1}" if line_index is not None else "recording"
        filename = stem + EXTENSIONS.get(result.mime_type, ".bin")
        audio_file_path = session_path / filename

        try:
            with open(audio_file_path, 'wb') as f:
                f.write(result.audio_data)
        except OSError as e:
            logger.error(f"Error saving audio file {audio_file_path}: {e}")
            raise

        logger.info(f"Audio file saved: {audio_file_path} ({result.size_bytes} bytes)")

        session_info = SessionInfo(
            session_id=result.session_id,
            start_time=datetime.now(),
            line_index=line_index,
            duration_ms=result.duration_ms,
            audio_file=filename,
            file_size_bytes=result.size_bytes,
            sample_rate=result.sample_rate,
            mime_type=result.mime_type,
        )
        self.save_session_info(session_info)
        return session_info

    def save_session_info(self, session_info: SessionInfo) -> str:
        """Save session information to JSON file.

        Returns:
            Path to saved session info file
        """
        session_path = self.get_session_path(session_info.session_id)
        session_path.mkdir(parents=True, exist_ok=True)

        info_file = session_path / "session_info.json"

        # Convert datetime to string for JSON serialization
        info_dict = asdict(session_info)
        info_dict['start_time'] = session_info.start_time.isoformat()

        try:
            with open(info_file, 'w') as f:
                json.dump(info_dict, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving session info: {e}")
            raise

        logger.info(f"Session info saved: {info_file}")
        return str(info_file)

    def load_session_info(self, session_id: str) -> Optional[SessionInfo]:
        """Load session information from JSON file.

        Returns:
            SessionInfo object or None if not found or unreadable
        """
        info_file = self.get_session_path(session_id) / "session_info.json"

        if not info_file.exists():
            logger.warning(f"Session info file not found: {info_file}")
            return None

        try:
            with open(info_file, 'r') as f:
                data = json.load(f)
            data['start_time'] = datetime.fromisoformat(data['start_time'])
            return SessionInfo(**data)
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.error(f"Error loading session info: {e}")
            return None

    def list_sessions(self) -> List[str]:
        """List all saved session IDs, oldest first."""
        sessions = [
            path.name for path in self.sessions_dir.iterdir()
            if path.is_dir() and (path / "session_info.json").exists()
        ]
        sessions.sort()
        logger.debug(f"Found {len(sessions)} sessions")
        return sessions

    def cleanup_old_sessions(self, max_age_days: int = 30) -> int:
        """Delete session directories older than max_age_days.

        Returns:
            Number of sessions cleaned up
        """
        cutoff_time = datetime.now().timestamp() - (max_age_days * 24 * 60 * 60)
        cleaned_count = 0

        for session_path in self.sessions_dir.iterdir():
            if session_path.is_dir() and session_path.stat().st_mtime < cutoff_time:
                shutil.rmtree(session_path)
                cleaned_count += 1
                logger.info(f"Cleaned up old session: {session_path}")

        logger.info(f"Cleaned up {cleaned_count} old sessions")
        return cleaned_count
