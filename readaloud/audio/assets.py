"""Static audio assets used by the recorder's bypass mode."""

import logging
from pathlib import Path

from ..models.audio import WAV_MIME_TYPE

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".wav": WAV_MIME_TYPE,
    ".mp3": "audio/mpeg",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
}


class AssetLoadError(RuntimeError):
    """A bypass-mode asset is missing or unreadable."""


def guess_mime_type(path: str) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


def load_audio_asset(path: str) -> bytes:
    """Read an audio asset from disk, byte for byte.

    Raises:
        AssetLoadError: if the file does not exist or cannot be read
    """
    asset_file = Path(path)
    if not asset_file.is_file():
        raise AssetLoadError(f"Test audio not found: {asset_file}")

    try:
        audio_data = asset_file.read_bytes()
    except OSError as e:
        raise AssetLoadError(f"Failed to load test audio {asset_file}: {e}") from e

    logger.info(f"Loaded test audio {asset_file} ({len(audio_data)} bytes)")
    return audio_data
